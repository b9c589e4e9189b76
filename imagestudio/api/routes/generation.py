"""
Generation API: catalog, generate image, enhance prompt.
Failures come back as {kind, message} with a status derived from the failure kind.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from imagestudio.schemas.generation import (
    EnhancePromptRequest,
    EnhancePromptResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    GenerationAttemptOut,
    GenerationErrorResponse,
    GenerationRequest,
)
from imagestudio.services.image_generation import FailureKind, ImageGenerationError, ImageGenerator
from imagestudio.services.image_generation.catalog import (
    ASPECT_RATIOS,
    FILTER_CATALOG,
    PROMPT_SUGGESTIONS,
    RESOLUTIONS,
    STYLE_PRESETS,
    style_preset_suffix,
)
from imagestudio.services.llm.prompt_enhancer import enhance_prompt

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

# Keys for structured request logging
LOG_KEYS = ("failure_kind", "status_code")

STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.VALIDATION: 422,
    FailureKind.MISSING_CREDENTIAL: 503,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.PERMISSION_DENIED: 403,
    FailureKind.NOT_FOUND: 404,
}
DEFAULT_ERROR_STATUS = 502


def get_image_generator() -> ImageGenerator:
    return ImageGenerator.from_settings()


def get_prompt_enhancer():
    return enhance_prompt


def to_generation_request(body: GenerateImageRequest) -> GenerationRequest:
    """Drop the API-only preset id, resolving it to a suffix when no suffix was given."""
    data = body.model_dump(exclude={"style_preset"})
    if not data.get("style_preset_suffix") and body.style_preset:
        data["style_preset_suffix"] = style_preset_suffix(body.style_preset) or None
    return GenerationRequest(**data)


@router.get("/catalog")
def catalog() -> dict:
    """Filter options, style presets, aspect ratios, resolutions and prompt suggestions."""
    return {
        "filters": {
            category: [
                {"id": opt.id, "label": opt.label, "prompt": opt.prompt}
                for opt in FILTER_CATALOG.options(category)
            ]
            for category in FILTER_CATALOG.categories
        },
        "style_presets": [
            {"id": p.id, "label": p.label, "suffix": p.suffix} for p in STYLE_PRESETS
        ],
        "aspect_ratios": [{"value": a.value, "label": a.label} for a in ASPECT_RATIOS],
        "resolutions": list(RESOLUTIONS),
        "prompt_suggestions": [
            {"category": category, "prompts": list(prompts)}
            for category, prompts in PROMPT_SUGGESTIONS.items()
        ],
    }


@router.post(
    "/generate",
    response_model=GenerateImageResponse,
    responses={
        status: {"model": GenerationErrorResponse}
        for status in (*STATUS_BY_KIND.values(), DEFAULT_ERROR_STATUS)
    },
)
async def generate(
    body: GenerateImageRequest,
    generator: ImageGenerator = Depends(get_image_generator),
):
    request = to_generation_request(body)
    try:
        result = await generator.generate(request)
    except ImageGenerationError as e:
        classified = e.classified
        status = STATUS_BY_KIND.get(classified.kind, DEFAULT_ERROR_STATUS)
        logger.info(
            "generate_request_failed",
            extra={"failure_kind": classified.kind.value, "status_code": status},
        )
        return JSONResponse(
            status_code=status,
            content=GenerationErrorResponse(kind=classified.kind.value, message=classified.message).model_dump(),
        )
    return GenerateImageResponse(
        image_url=result.data_uri,
        model=result.model,
        attempts=[
            GenerationAttemptOut(model=a.model, tier=a.tier.value, outcome=a.outcome)
            for a in result.attempts
        ],
    )


@router.post("/enhance-prompt", response_model=EnhancePromptResponse)
async def enhance(
    body: EnhancePromptRequest,
    enhancer=Depends(get_prompt_enhancer),
) -> EnhancePromptResponse:
    return EnhancePromptResponse(prompt=await enhancer(body.prompt))
