"""
Failure taxonomy for image generation.
Maps raw backend failures (HTTP status, message, error body) to a small set of
kinds that drive the retry/fallback policy and the user-facing message.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Stable failure kinds surfaced to the caller."""

    MISSING_CREDENTIAL = "missing_credential"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"  # 429 / quota / RESOURCE_EXHAUSTED
    PERMISSION_DENIED = "permission_denied"  # 403 / PERMISSION_DENIED
    NOT_FOUND = "not_found"  # 404 / model not found
    FALLBACK_FAILED = "fallback_failed"  # standard tier failed after high tier was refused
    MALFORMED = "malformed"  # 200 OK without a usable image
    UNKNOWN = "unknown"
    CANCELLED = "cancelled"


# Kinds that send a high-tier request to the standard tier once
FALLBACK_KINDS = frozenset({
    FailureKind.PERMISSION_DENIED,
    FailureKind.NOT_FOUND,
})

RATE_LIMIT_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")
PERMISSION_MARKERS = ("PERMISSION_DENIED",)
NOT_FOUND_MARKERS = ("not found",)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
RATE_LIMITED_MESSAGE = (
    "High Traffic: You exceeded the rate limit for this API key. "
    "Please wait 1 minute before trying again."
)
PERMISSION_DENIED_MESSAGE = (
    "Permission Denied: Your API key cannot access this model. "
    "Ensure the Google Generative AI API is enabled in Cloud Console."
)
FALLBACK_FAILED_MESSAGE = (
    "Failed to generate image (Fallback also failed). Please check your API key permissions."
)


@dataclass(frozen=True)
class ClassifiedError:
    kind: FailureKind
    message: str


def extract_error_message(message: str, body: dict[str, Any] | None = None) -> str:
    """
    Human-readable message from a raw failure.
    Order: body.error.message, body.message, JSON in the message text, raw text.
    """
    if body:
        found = _message_from_json(body)
        if found:
            return found
    text = (message or "").strip()
    if not text:
        return UNKNOWN_ERROR_MESSAGE
    if text.startswith("{"):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return text
        return _message_from_json(parsed) or text
    return text


def _message_from_json(parsed: Any) -> str | None:
    if not isinstance(parsed, dict):
        return None
    error = parsed.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if parsed.get("message"):
        return str(parsed["message"])
    return None


def _haystack(message: str, body: dict[str, Any] | None) -> str:
    """Message plus the serialized body, so status strings inside the body are matched too."""
    text = message or ""
    if body:
        text += " " + json.dumps(body, ensure_ascii=False)
    return text


def classify_failure(
    http_status: int | None,
    message: str = "",
    body: dict[str, Any] | None = None,
) -> ClassifiedError:
    """
    Classify a raw backend failure.
    Rate limit is checked first, then permission, then not-found; anything else is unknown.
    """
    text = _haystack(message, body)

    if http_status == 429 or any(m in text for m in RATE_LIMIT_MARKERS):
        return ClassifiedError(FailureKind.RATE_LIMITED, RATE_LIMITED_MESSAGE)
    if http_status == 403 or any(m in text for m in PERMISSION_MARKERS):
        return ClassifiedError(FailureKind.PERMISSION_DENIED, PERMISSION_DENIED_MESSAGE)
    if http_status == 404 or any(m in text for m in NOT_FOUND_MARKERS):
        return ClassifiedError(FailureKind.NOT_FOUND, extract_error_message(message, body))
    return ClassifiedError(FailureKind.UNKNOWN, extract_error_message(message, body))
