"""
Image generation: prompt composition, request assembly, tier selection,
retry/fallback runner and the Gemini backend.
"""
from .base import (
    GenerationAttempt,
    GenerationResult,
    ImageGenerationProvider,
    ImageGenerationError,
    InvalidGenerationRequest,
    MalformedResponseError,
    MissingCredentialError,
    build_error_detail,
    sanitize_for_log,
)
from .failure_types import ClassifiedError, FailureKind, classify_failure
from .model_selector import HighTierConfig, ModelTier, StandardTierConfig, select_tier
from .prompt_composer import compose_prompt
from .request_builder import GenerationMode, build_request
from .response_extractor import extract_image_data_uri
from .runner import AttemptState, ImageGenerator, generate_image, next_state

__all__ = [
    "GenerationAttempt",
    "GenerationResult",
    "ImageGenerationProvider",
    "ImageGenerationError",
    "InvalidGenerationRequest",
    "MalformedResponseError",
    "MissingCredentialError",
    "build_error_detail",
    "sanitize_for_log",
    "ClassifiedError",
    "FailureKind",
    "classify_failure",
    "HighTierConfig",
    "ModelTier",
    "StandardTierConfig",
    "select_tier",
    "compose_prompt",
    "GenerationMode",
    "build_request",
    "extract_image_data_uri",
    "AttemptState",
    "ImageGenerator",
    "generate_image",
    "next_state",
]
