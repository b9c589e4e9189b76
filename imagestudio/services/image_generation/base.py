"""
Base classes and types for image generation.
Used by the runner, the Gemini provider and the prompt enhancer.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from imagestudio.services.image_generation.failure_types import ClassifiedError, FailureKind

if TYPE_CHECKING:
    from imagestudio.services.image_generation.model_selector import ModelTier, TierConfig


class ImageGenerationError(Exception):
    """
    Raised when generation fails.

    Backends raise it without a kind and put raw fields (http_status, body,
    retry_after, finish_reason) into detail; the runner classifies them and
    raises a terminal error with kind set.
    """

    def __init__(
        self,
        message: str,
        detail: dict[str, Any] | None = None,
        kind: FailureKind | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
        self.kind = kind

    @property
    def classified(self) -> ClassifiedError:
        return ClassifiedError(self.kind or FailureKind.UNKNOWN, self.message)


class InvalidGenerationRequest(ImageGenerationError):
    """Request rejected locally, before any network call."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message, detail=detail, kind=FailureKind.VALIDATION)


class MissingCredentialError(ImageGenerationError):
    def __init__(self, message: str = "API key not found. Please set the GEMINI_API_KEY environment variable."):
        super().__init__(message, kind=FailureKind.MISSING_CREDENTIAL)


class MalformedResponseError(ImageGenerationError):
    """Backend answered but the response has no usable payload."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message, detail=detail, kind=FailureKind.MALFORMED)


@dataclass
class GenerationAttempt:
    """One backend call made while serving a single request."""
    model: str
    tier: "ModelTier"
    config: "TierConfig"
    outcome: str  # "success" or a FailureKind value


@dataclass
class GenerationResult:
    data_uri: str
    model: str
    attempts: list[GenerationAttempt] = field(default_factory=list)


def build_error_detail(result: dict[str, Any]) -> dict[str, Any]:
    """
    Extract error-related fields from a raw generateContent response for logging.
    Normalized keys: block_reason, finish_reason, finish_message, safety_ratings.
    """
    detail: dict[str, Any] = {}
    if not isinstance(result, dict):
        return detail
    prompt_feedback = result.get("promptFeedback") or {}
    if isinstance(prompt_feedback, dict) and prompt_feedback.get("blockReason"):
        detail["block_reason"] = prompt_feedback.get("blockReason")
    candidates = result.get("candidates") or []
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        c0 = candidates[0]
        if "finishReason" in c0:
            detail["finish_reason"] = c0["finishReason"]
        if "finishMessage" in c0:
            detail["finish_message"] = c0["finishMessage"]
        if "safetyRatings" in c0:
            detail["safety_ratings"] = c0["safetyRatings"]
    return detail


def _sanitize_value(value: Any) -> Any:
    """Recursively replace base64 data with placeholder."""
    if value is None:
        return None
    if isinstance(value, dict):
        if "data" in value and ("mimeType" in value or "mime_type" in value):
            return {"mimeType": value.get("mimeType") or value.get("mime_type"), "data": "[REDACTED]"}
        return {k: _sanitize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize_value(v) for v in value]
    return value


def sanitize_for_log(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of a request/response safe for logging (no base64 image data)."""
    if not payload:
        return {}
    out = _sanitize_value(payload)
    return out if isinstance(out, dict) else {}


class ImageGenerationProvider(ABC):
    """Remote generateContent capability."""

    def __init__(self, config: dict) -> None:
        self.config = config

    @abstractmethod
    async def generate(
        self,
        model: str,
        parts: list[dict[str, Any]],
        config: "TierConfig | None" = None,
        *,
        api_key: str,
    ) -> dict[str, Any]:
        """
        Call the model with content parts and return the raw response dict.
        Raises ImageGenerationError (detail carries http_status/body) on failure.
        config=None means a plain text call with no image configuration.
        """
        pass
