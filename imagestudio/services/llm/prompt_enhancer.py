"""
Prompt enhancement: a fast text model rewrites a user prompt to be more descriptive.
Never raises; on any failure the original prompt is returned unchanged.
"""
import logging

from imagestudio.core.config import settings
from imagestudio.services.image_generation.base import ImageGenerationError, ImageGenerationProvider
from imagestudio.services.image_generation.credentials import (
    CredentialProvider,
    SettingsCredentialProvider,
    require_api_key,
)
from imagestudio.services.image_generation.providers.gemini import GeminiProvider
from imagestudio.services.image_generation.response_extractor import extract_text
from imagestudio.utils.metrics import prompt_enhancements_total

logger = logging.getLogger(__name__)

# Keys for structured enhancement logging
LOG_KEYS = ("model", "error", "failure_kind", "prompt_len")

ENHANCE_INSTRUCTION = (
    "You are an expert prompt engineer for high-end AI image generators. "
    "Rewrite the following user prompt to be extremely descriptive, visual, and detailed "
    "to achieve a photorealistic result. Keep it under 100 words. "
    "Do not add conversational text, just the prompt. "
    'User Prompt: "{prompt}"'
)


def build_enhance_prompt(original_prompt: str) -> str:
    return ENHANCE_INSTRUCTION.format(prompt=original_prompt)


async def enhance_prompt(
    original_prompt: str,
    *,
    provider: ImageGenerationProvider | None = None,
    credentials: CredentialProvider | None = None,
    model: str | None = None,
) -> str:
    """
    Rewrite a prompt with the text model.

    Returns the enhanced prompt, or original_prompt if the key is missing,
    the call fails or the model answers with empty text.
    """
    if provider is None:
        provider = GeminiProvider.from_settings(settings)
    credentials = credentials or SettingsCredentialProvider()
    model = model or settings.gemini_text_model

    try:
        api_key = require_api_key(credentials)
        response = await provider.generate(
            model,
            [{"text": build_enhance_prompt(original_prompt)}],
            None,
            api_key=api_key,
        )
        enhanced = extract_text(response)
    except ImageGenerationError as e:
        prompt_enhancements_total.labels(outcome="failed").inc()
        logger.warning(
            "prompt_enhancement_failed",
            extra={
                "model": model,
                "error": e.message,
                "failure_kind": e.kind.value if e.kind else None,
            },
        )
        return original_prompt
    except Exception:
        prompt_enhancements_total.labels(outcome="failed").inc()
        logger.exception("prompt_enhancement_failed", extra={"model": model})
        return original_prompt

    if not enhanced:
        prompt_enhancements_total.labels(outcome="unchanged").inc()
        return original_prompt

    prompt_enhancements_total.labels(outcome="enhanced").inc()
    logger.info("prompt_enhanced", extra={"model": model, "prompt_len": len(enhanced)})
    return enhanced
