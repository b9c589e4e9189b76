"""
Content parts and system instruction for a generation request.
Three exclusive shapes: style transfer, reference-guided, plain text-to-image.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from imagestudio.schemas.generation import GenerationRequest
from imagestudio.services.image_generation.base import InvalidGenerationRequest
from imagestudio.services.image_generation.catalog import FILTER_CATALOG, FilterCatalog
from imagestudio.services.image_generation.prompt_composer import compose_prompt

logger = logging.getLogger(__name__)

BASE_SYSTEM_INSTRUCTION = (
    "You are a world-class AI artist capable of generating hyper-realistic "
    "and stylistically complex imagery."
)
RAW_MODE_CLAUSE = " STRICTLY ADHERE to the user's prompt. Do not add unrequested elements."
ENHANCE_CLAUSE = " Pay close attention to lighting, composition, and texture. Enhance the visual quality."
REFERENCE_CLAUSE = " Use the provided image as a strong reference for composition, color, and subject matter."

STYLE_TRANSFER_INSTRUCTION = (
    "Instruction: Generate a new high-fidelity image that strictly preserves the structural "
    "content of the first image, but applies the artistic style of the second image."
)


class GenerationMode(str, Enum):
    STYLE_TRANSFER = "style_transfer"
    REFERENCE_GUIDED = "reference_guided"
    TEXT_TO_IMAGE = "text_to_image"


@dataclass(frozen=True)
class AssembledRequest:
    mode: GenerationMode
    parts: tuple[dict[str, Any], ...]
    system_instruction: str
    prompt: str  # text part actually sent


def build_system_instruction(raw_mode: bool, with_reference: bool = False) -> str:
    instruction = BASE_SYSTEM_INSTRUCTION
    instruction += RAW_MODE_CLAUSE if raw_mode else ENHANCE_CLAUSE
    if with_reference:
        instruction += REFERENCE_CLAUSE
    return instruction


def build_style_transfer_text(prompt: str, negative_prompt: str | None) -> str:
    text = STYLE_TRANSFER_INSTRUCTION
    if prompt:
        text += f" Additional User Instruction: {prompt}"
    if negative_prompt:
        text += f" Exclude: {negative_prompt}."
    return text


def build_request(
    request: GenerationRequest,
    catalog: FilterCatalog = FILTER_CATALOG,
) -> AssembledRequest:
    """
    Select the content shape and assemble parts.

    Raises:
        InvalidGenerationRequest: content/style image given without its pair, or
            text-to-image with neither prompt nor reference image.
    """
    has_content = request.content_image is not None
    has_style = request.style_image is not None

    if has_content != has_style:
        missing = "style_image" if has_content else "content_image"
        raise InvalidGenerationRequest(
            f"Style transfer requires both a content image and a style image ({missing} is missing).",
            detail={"missing": missing},
        )

    if has_content and has_style:
        if request.reference_image is not None:
            logger.warning(
                "reference_image_ignored",
                extra={"mode": GenerationMode.STYLE_TRANSFER.value},
            )
        text = build_style_transfer_text(request.prompt, request.negative_prompt)
        return AssembledRequest(
            mode=GenerationMode.STYLE_TRANSFER,
            parts=(
                request.content_image.to_part(),
                request.style_image.to_part(),
                {"text": text},
            ),
            system_instruction=build_system_instruction(request.raw_mode),
            prompt=text,
        )

    if request.reference_image is not None:
        final_prompt = compose_prompt(request, catalog)
        return AssembledRequest(
            mode=GenerationMode.REFERENCE_GUIDED,
            parts=(request.reference_image.to_part(), {"text": final_prompt}),
            system_instruction=build_system_instruction(request.raw_mode, with_reference=True),
            prompt=final_prompt,
        )

    if not request.prompt.strip():
        raise InvalidGenerationRequest("Enter a prompt or provide a reference image.")

    final_prompt = compose_prompt(request, catalog)
    return AssembledRequest(
        mode=GenerationMode.TEXT_TO_IMAGE,
        parts=({"text": final_prompt},),
        system_instruction=build_system_instruction(request.raw_mode),
        prompt=final_prompt,
    )
