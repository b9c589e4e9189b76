"""Shared pytest fixtures: scripted backend, recorded sleep, fixed jitter."""
from typing import Any

import pytest

from imagestudio.services.image_generation.base import ImageGenerationError, ImageGenerationProvider
from imagestudio.services.image_generation.credentials import StaticCredentialProvider

STANDARD_MODEL = "gemini-2.5-flash-image"
HIGH_MODEL = "gemini-3-pro-image-preview"


def image_response(data: str = "QUJD", mime_type: str | None = "image/png") -> dict:
    inline: dict[str, str] = {"data": data}
    if mime_type is not None:
        inline["mimeType"] = mime_type
    return {"candidates": [{"content": {"parts": [{"inlineData": inline}]}, "finishReason": "STOP"}]}


def text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def http_error(status: int, message: str = "", status_text: str = "") -> ImageGenerationError:
    body = {"error": {"code": status, "message": message, "status": status_text}}
    return ImageGenerationError(message or status_text, detail={"http_status": status, "body": body})


RATE_LIMITED = http_error(429, "Resource has been exhausted (e.g. check quota).", "RESOURCE_EXHAUSTED")
PERMISSION_DENIED = http_error(403, "The caller does not have permission", "PERMISSION_DENIED")
NOT_FOUND = http_error(404, "models/x is not found for API version v1beta", "NOT_FOUND")


class ScriptedProvider(ImageGenerationProvider):
    """
    Backend stub. Outcomes are consumed per model in call order; an outcome is a
    response dict (returned) or an exception (raised). The last outcome repeats.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None, default: Any = None) -> None:
        super().__init__({})
        self.script = {model: list(outcomes) for model, outcomes in (script or {}).items()}
        self.default = default
        self.calls: list[dict[str, Any]] = []

    def calls_for(self, model: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["model"] == model]

    async def generate(self, model, parts, config=None, *, api_key):
        self.calls.append({"model": model, "parts": parts, "config": config, "api_key": api_key})
        outcomes = self.script.get(model)
        if outcomes:
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        else:
            outcome = self.default
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            raise AssertionError(f"no scripted outcome for {model}")
        return outcome


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def credentials():
    return StaticCredentialProvider("test-key")


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fixed_jitter():
    return lambda low, high: 0.25
