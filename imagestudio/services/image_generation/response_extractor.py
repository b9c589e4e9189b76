"""
Image (or text) payload from a generateContent response.
200 OK without a usable payload is never a silent success.
"""
from typing import Any

from imagestudio.services.image_generation.base import MalformedResponseError, build_error_detail

DEFAULT_MIME_TYPE = "image/png"


def _shape_error(response: Any) -> MalformedResponseError:
    detail = build_error_detail(response) if isinstance(response, dict) else {}
    return MalformedResponseError("Unexpected response shape.", detail=detail)


def _first_candidate_parts(response: dict[str, Any]) -> list[dict[str, Any]]:
    if not isinstance(response, dict):
        raise _shape_error(response)
    candidates = response.get("candidates") or []
    if not isinstance(candidates, list):
        raise _shape_error(response)
    if not candidates:
        raise MalformedResponseError("No candidates returned.", detail=build_error_detail(response))
    candidate = candidates[0] or {}
    if not isinstance(candidate, dict):
        raise _shape_error(response)
    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise _shape_error(response)
    parts = content.get("parts")
    if not parts:
        raise MalformedResponseError("No content parts returned.", detail=build_error_detail(response))
    if not isinstance(parts, list):
        raise _shape_error(response)
    # non-dict parts carry no payload
    return [p for p in parts if isinstance(p, dict)]


def extract_image_data_uri(response: dict[str, Any]) -> str:
    """First inline image part as data:<mime>;base64,<payload>."""
    for part in _first_candidate_parts(response):
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and isinstance(inline.get("data"), str) and inline["data"]:
            mime_type = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_MIME_TYPE
            return f"data:{mime_type};base64,{inline['data']}"
    raise MalformedResponseError("No image data found in the response.", detail=build_error_detail(response))


def extract_text(response: dict[str, Any]) -> str:
    """Concatenated text parts of the first candidate, stripped."""
    texts = [p["text"] for p in _first_candidate_parts(response) if isinstance(p.get("text"), str)]
    return "".join(texts).strip()
