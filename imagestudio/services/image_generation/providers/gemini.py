"""
Gemini provider (Google AI generateContent).
Uses generativelanguage.googleapis.com with an api key passed per call.
Failures are raised unclassified; the runner decides on retry/fallback.
"""
import json
import logging
from typing import Any

import httpx

from imagestudio.services.image_generation.base import (
    ImageGenerationProvider,
    ImageGenerationError,
    build_error_detail,
    sanitize_for_log,
)
from imagestudio.services.image_generation.model_selector import TierConfig

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com"
DEFAULT_TIMEOUT = 180.0


def _parse_safety_settings(value: Any) -> list[dict[str, Any]]:
    """Parse safety_settings from config (list of {category, threshold} or JSON string)."""
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            return parsed if isinstance(parsed, list) else []
        except json.JSONDecodeError:
            return []
    return []


def build_payload(
    parts: list[dict[str, Any]],
    config: TierConfig | None,
    safety_settings: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"contents": [{"role": "user", "parts": list(parts)}]}
    if config is not None:
        payload["systemInstruction"] = {"parts": [{"text": config.system_instruction}]}
        payload["generationConfig"] = config.generation_config()
    if safety_settings:
        payload["safetySettings"] = safety_settings
    return payload


class GeminiProvider(ImageGenerationProvider):
    """generateContent over REST with httpx."""

    def __init__(self, config: dict | None = None, client: httpx.AsyncClient | None = None) -> None:
        super().__init__(config or {})
        endpoint = (self.config.get("api_endpoint") or DEFAULT_ENDPOINT).rstrip("/")
        self.base_url = f"{endpoint}/v1beta/models"
        self.timeout = float(self.config.get("timeout", DEFAULT_TIMEOUT))
        self.safety_settings = _parse_safety_settings(self.config.get("safety_settings"))
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "GeminiProvider":
        return cls({
            "api_endpoint": settings.gemini_api_endpoint,
            "timeout": settings.gemini_timeout,
            "safety_settings": settings.gemini_safety_settings,
        })

    async def generate(
        self,
        model: str,
        parts: list[dict[str, Any]],
        config: TierConfig | None = None,
        *,
        api_key: str,
    ) -> dict[str, Any]:
        payload = build_payload(parts, config, self.safety_settings)
        url = f"{self.base_url}/{model}:generateContent"
        tier = config.tier.value if config is not None else None
        logger.debug("gemini_request", extra={"model": model, "tier": tier})

        try:
            if self._client is not None:
                result = await self._post(self._client, url, api_key, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    result = await self._post(client, url, api_key, payload)
        except httpx.HTTPStatusError as e:
            try:
                err_body = e.response.json()
            except ValueError:
                err_body = {}
            if not isinstance(err_body, dict):
                err_body = {}
            detail: dict[str, Any] = {
                "http_status": e.response.status_code,
                "body": err_body,
            }
            retry_after = e.response.headers.get("Retry-After")
            if retry_after is not None:
                detail["retry_after"] = retry_after
            error = err_body.get("error") if isinstance(err_body.get("error"), dict) else {}
            msg = error.get("message") or str(e)
            status_text = error.get("status")
            if status_text and status_text not in msg:
                msg = f"{status_text}: {msg}"
            raise ImageGenerationError(msg, detail=detail) from e
        except httpx.HTTPError as e:
            raise ImageGenerationError(str(e) or type(e).__name__, detail={}) from e
        except ValueError as e:
            raise ImageGenerationError(f"Invalid JSON from Gemini: {e}", detail={}) from e

        if not isinstance(result, dict):
            raise ImageGenerationError("Unexpected response body from Gemini", detail={})

        detail = build_error_detail(result)
        if detail.get("block_reason"):
            logger.warning("gemini_prompt_blocked", extra={"model": model, "error": detail.get("block_reason")})

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("gemini_response %s", json.dumps(sanitize_for_log(result))[:2000], extra={"model": model})
        return result

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        api_key: str,
        payload: dict[str, Any],
    ) -> Any:
        resp = await client.post(url, params={"key": api_key}, json=payload)
        resp.raise_for_status()
        return resp.json()
