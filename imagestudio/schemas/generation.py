"""
DTOs for image generation: request coming from the caller, image blobs, API payloads.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


AspectRatio = Literal["1:1", "4:3", "3:4", "16:9", "9:16"]
ImageResolution = Literal["1K", "2K", "4K"]


class ImageBlob(BaseModel):
    """Caller-owned image payload: base64 without the data: prefix."""

    data: str = Field(..., min_length=1)
    mime_type: str = "image/png"

    model_config = {"frozen": True}

    def to_part(self) -> dict[str, dict[str, str]]:
        """Backend inlineData part."""
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


class GenerationRequest(BaseModel):
    """
    One image generation request.

    content_image and style_image must come as a pair; that is checked by the
    request builder so the caller gets a validation failure before any network call.
    """

    prompt: str = ""
    negative_prompt: str | None = None
    aspect_ratio: AspectRatio = "1:1"
    resolution: ImageResolution = "1K"
    style_preset_suffix: str | None = None

    # Filter ids into the catalog ("none" = no phrase)
    environment: str = "none"
    character: str = "none"
    camera: str = "none"
    mood: str = "none"
    technical_style: str = "none"

    seed: int | None = None
    creativity: float | None = Field(None, ge=0.0, le=1.0)
    raw_mode: bool = False

    reference_image: ImageBlob | None = None
    content_image: ImageBlob | None = None
    style_image: ImageBlob | None = None

    model_config = {"frozen": True}


# ----- HTTP API -----


class GenerateImageRequest(GenerationRequest):
    """API body: same as GenerationRequest plus a style preset id resolved server-side."""

    style_preset: str | None = Field(
        None,
        description="Style preset id from /catalog; ignored when style_preset_suffix is given",
    )


class GenerationAttemptOut(BaseModel):
    model: str
    tier: str
    outcome: str


class GenerateImageResponse(BaseModel):
    image_url: str = Field(..., description="data:<mime>;base64,<payload>")
    model: str
    attempts: list[GenerationAttemptOut] = []


class EnhancePromptRequest(BaseModel):
    prompt: str


class EnhancePromptResponse(BaseModel):
    prompt: str


class GenerationErrorResponse(BaseModel):
    kind: str
    message: str
