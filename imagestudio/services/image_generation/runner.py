"""
Generation runner: one request -> one data URI or one classified failure.

The control flow is an explicit state machine:

    ATTEMPT_PRIMARY --success--> DONE
    ATTEMPT_PRIMARY --rate_limited, retries left--> BACKOFF --> ATTEMPT_PRIMARY
    ATTEMPT_PRIMARY --rate_limited, no retries left--> FAILED(rate_limited)
    ATTEMPT_PRIMARY --permission_denied/not_found on high tier--> ATTEMPT_FALLBACK
    ATTEMPT_PRIMARY --anything else--> FAILED(kind)
    ATTEMPT_FALLBACK --success--> DONE
    ATTEMPT_FALLBACK --failure--> FAILED(fallback_failed)

Attempts are strictly sequential. Sleep, jitter and credentials are injected so
the whole machine can be driven by a scripted backend without network or clock.
"""
import asyncio
import logging
import random
from enum import Enum
from typing import Any, Awaitable, Callable

from imagestudio.core.config import settings
from imagestudio.schemas.generation import GenerationRequest
from imagestudio.services.image_generation.base import (
    GenerationAttempt,
    GenerationResult,
    ImageGenerationError,
    ImageGenerationProvider,
)
from imagestudio.services.image_generation.catalog import FILTER_CATALOG, FilterCatalog
from imagestudio.services.image_generation.credentials import (
    CredentialProvider,
    SettingsCredentialProvider,
    require_api_key,
)
from imagestudio.services.image_generation.failure_types import (
    FALLBACK_FAILED_MESSAGE,
    FALLBACK_KINDS,
    FailureKind,
    classify_failure,
)
from imagestudio.services.image_generation.model_selector import (
    HighTierConfig,
    ModelTier,
    TierConfig,
    build_tier_config,
    select_tier,
)
from imagestudio.services.image_generation.providers.gemini import GeminiProvider
from imagestudio.services.image_generation.request_builder import build_request
from imagestudio.services.image_generation.response_extractor import extract_image_data_uri
from imagestudio.utils.metrics import (
    image_generation_attempts_total,
    image_generation_duration_seconds,
    image_generation_failed_total,
    image_generation_fallbacks_total,
    image_generation_retries_total,
)

logger = logging.getLogger(__name__)

# Keys for structured generation logging
LOG_KEYS = (
    "model",
    "tier",
    "mode",
    "attempt",
    "max_retries",
    "delay_seconds",
    "state",
    "failure_kind",
    "http_status",
    "retry_after",
    "retries_used",
    "error",
)


class AttemptState(str, Enum):
    ATTEMPT_PRIMARY = "attempt_primary"
    BACKOFF = "backoff"
    ATTEMPT_FALLBACK = "attempt_fallback"
    DONE = "done"
    FAILED = "failed"


def next_state(
    state: AttemptState,
    failure: FailureKind | None,
    tier: ModelTier,
    retries_used: int,
    max_retries: int,
) -> AttemptState:
    """Transition after an attempt; failure=None means the attempt succeeded."""
    if state is AttemptState.ATTEMPT_PRIMARY:
        if failure is None:
            return AttemptState.DONE
        if failure is FailureKind.RATE_LIMITED:
            return AttemptState.BACKOFF if retries_used < max_retries else AttemptState.FAILED
        if failure in FALLBACK_KINDS and tier is ModelTier.HIGH:
            return AttemptState.ATTEMPT_FALLBACK
        return AttemptState.FAILED
    if state is AttemptState.ATTEMPT_FALLBACK:
        return AttemptState.DONE if failure is None else AttemptState.FAILED
    raise ValueError(f"no transition out of {state.value}")


def classify_error(error: ImageGenerationError) -> ImageGenerationError:
    """Return an error with kind set; raw backend errors are classified from detail."""
    if error.kind is not None:
        return error
    detail = error.detail or {}
    classified = classify_failure(detail.get("http_status"), error.message, detail.get("body"))
    terminal = ImageGenerationError(
        classified.message,
        detail={**detail, "raw_message": error.message},
        kind=classified.kind,
    )
    terminal.__cause__ = error
    return terminal


class ImageGenerator:
    """Runs one generation request through tier selection, retry and fallback."""

    def __init__(
        self,
        provider: ImageGenerationProvider,
        credentials: CredentialProvider,
        *,
        catalog: FilterCatalog = FILTER_CATALOG,
        standard_model: str | None = None,
        high_model: str | None = None,
        max_retries: int | None = None,
        backoff_base_seconds: float | None = None,
        jitter_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.provider = provider
        self.credentials = credentials
        self.catalog = catalog
        self.standard_model = standard_model or settings.gemini_standard_tier_model
        self.high_model = high_model or settings.gemini_high_tier_model
        self.max_retries = settings.image_generation_max_retries if max_retries is None else max_retries
        self.backoff_base_seconds = (
            settings.image_generation_backoff_base_seconds
            if backoff_base_seconds is None else backoff_base_seconds
        )
        self.jitter_seconds = settings.image_generation_jitter_seconds if jitter_seconds is None else jitter_seconds
        self._sleep = sleep
        self._jitter = jitter

    @classmethod
    def from_settings(cls, app_settings=None, **kwargs: Any) -> "ImageGenerator":
        app_settings = app_settings or settings
        return cls(
            GeminiProvider.from_settings(app_settings),
            SettingsCredentialProvider(app_settings),
            standard_model=app_settings.gemini_standard_tier_model,
            high_model=app_settings.gemini_high_tier_model,
            max_retries=app_settings.image_generation_max_retries,
            backoff_base_seconds=app_settings.image_generation_backoff_base_seconds,
            jitter_seconds=app_settings.image_generation_jitter_seconds,
            **kwargs,
        )

    def model_for(self, tier: ModelTier) -> str:
        return self.high_model if tier is ModelTier.HIGH else self.standard_model

    def backoff_delay(self, retry_number: int) -> float:
        """2s, 4s, 8s ... for retry 1, 2, 3 plus jitter in [0, jitter_seconds)."""
        return self.backoff_base_seconds ** retry_number + self._jitter(0, self.jitter_seconds)

    async def generate_image(self, request: GenerationRequest) -> str:
        result = await self.generate(request)
        return result.data_uri

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate one image.

        Raises:
            ImageGenerationError: terminal failure; .kind is always set.
        """
        api_key = require_api_key(self.credentials)
        assembled = build_request(request, self.catalog)

        tier = select_tier(request.resolution)
        primary_config = build_tier_config(
            tier,
            system_instruction=assembled.system_instruction,
            aspect_ratio=request.aspect_ratio,
            resolution=request.resolution,
            seed=request.seed,
            temperature=request.creativity,
        )
        parts = list(assembled.parts)
        attempts: list[GenerationAttempt] = []

        state = AttemptState.ATTEMPT_PRIMARY
        retries_used = 0
        data_uri: str | None = None
        model = self.model_for(tier)
        error: ImageGenerationError | None = None
        logger.info(
            "image_generation_started",
            extra={"model": model, "tier": tier.value, "mode": assembled.mode.value},
        )

        try:
            with image_generation_duration_seconds.time():
                while state not in (AttemptState.DONE, AttemptState.FAILED):
                    if state is AttemptState.ATTEMPT_PRIMARY:
                        data_uri, error = await self._attempt(model, tier, parts, primary_config, api_key, attempts)
                        state = next_state(
                            state, error.kind if error else None, tier, retries_used, self.max_retries
                        )

                    elif state is AttemptState.BACKOFF:
                        retries_used += 1
                        delay = self.backoff_delay(retries_used)
                        image_generation_retries_total.labels(model=model).inc()
                        logger.warning(
                            "image_generation_retry_scheduled",
                            extra={
                                "model": model,
                                "attempt": retries_used,
                                "max_retries": self.max_retries,
                                "delay_seconds": round(delay, 2),
                                "failure_kind": FailureKind.RATE_LIMITED.value,
                            },
                        )
                        await self._sleep(delay)
                        state = AttemptState.ATTEMPT_PRIMARY

                    elif state is AttemptState.ATTEMPT_FALLBACK:
                        primary_kind = error.kind
                        image_generation_fallbacks_total.labels(reason=primary_kind.value).inc()
                        logger.warning(
                            "image_generation_fallback",
                            extra={"model": self.standard_model, "failure_kind": primary_kind.value},
                        )
                        fallback_config = (
                            primary_config.downgrade()
                            if isinstance(primary_config, HighTierConfig) else primary_config
                        )
                        model = self.standard_model
                        data_uri, fallback_error = await self._attempt(
                            model, ModelTier.STANDARD, parts, fallback_config, api_key, attempts
                        )
                        if fallback_error is not None:
                            error = ImageGenerationError(
                                FALLBACK_FAILED_MESSAGE,
                                detail={
                                    "primary_kind": primary_kind.value,
                                    "fallback_kind": fallback_error.kind.value,
                                    "fallback_message": fallback_error.message,
                                },
                                kind=FailureKind.FALLBACK_FAILED,
                            )
                            error.__cause__ = fallback_error
                        state = next_state(
                            state, fallback_error.kind if fallback_error else None,
                            ModelTier.STANDARD, retries_used, self.max_retries,
                        )
        except asyncio.CancelledError:
            image_generation_failed_total.labels(kind=FailureKind.CANCELLED.value).inc()
            logger.info(
                "image_generation_cancelled",
                extra={"model": model, "failure_kind": FailureKind.CANCELLED.value, "state": state.value},
            )
            raise

        if state is AttemptState.DONE and data_uri is not None:
            return GenerationResult(data_uri=data_uri, model=model, attempts=attempts)

        image_generation_failed_total.labels(kind=error.kind.value).inc()
        logger.warning(
            "image_generation_failed",
            extra={
                "model": model,
                "failure_kind": error.kind.value,
                "retries_used": retries_used,
                "error": error.message,
            },
        )
        raise error

    async def _attempt(
        self,
        model: str,
        tier: ModelTier,
        parts: list[dict[str, Any]],
        config: TierConfig,
        api_key: str,
        attempts: list[GenerationAttempt],
    ) -> tuple[str | None, ImageGenerationError | None]:
        """One backend call plus extraction; failures come back classified, not raised."""
        try:
            response = await self.provider.generate(model, parts, config, api_key=api_key)
            data_uri = extract_image_data_uri(response)
        except ImageGenerationError as e:
            return None, self._record_failure(model, tier, config, attempts, classify_error(e))
        except Exception as e:
            logger.exception("image_generation_unexpected_error", extra={"model": model, "tier": tier.value})
            wrapped = ImageGenerationError(str(e) or type(e).__name__, detail={})
            wrapped.__cause__ = e
            return None, self._record_failure(model, tier, config, attempts, classify_error(wrapped))

        attempts.append(GenerationAttempt(model=model, tier=tier, config=config, outcome="success"))
        image_generation_attempts_total.labels(model=model, outcome="success").inc()
        _log_attempt(model=model, tier=tier.value, attempt=len(attempts), state=AttemptState.DONE.value)
        return data_uri, None

    def _record_failure(
        self,
        model: str,
        tier: ModelTier,
        config: TierConfig,
        attempts: list[GenerationAttempt],
        error: ImageGenerationError,
    ) -> ImageGenerationError:
        attempts.append(GenerationAttempt(model=model, tier=tier, config=config, outcome=error.kind.value))
        image_generation_attempts_total.labels(model=model, outcome=error.kind.value).inc()
        _log_attempt(
            model=model,
            tier=tier.value,
            attempt=len(attempts),
            failure_kind=error.kind.value,
            http_status=error.detail.get("http_status"),
            retry_after=error.detail.get("retry_after"),
        )
        return error


async def generate_image(
    request: GenerationRequest,
    generator: ImageGenerator | None = None,
) -> str:
    """Entry point for callers: data URI of the generated image."""
    generator = generator or ImageGenerator.from_settings()
    return await generator.generate_image(request)


def _log_attempt(**kwargs: Any) -> None:
    """Emit one structured log line per backend attempt."""
    extra = {k: v for k, v in kwargs.items() if k in LOG_KEYS and v is not None}
    logger.info("image_generation_attempt", extra=extra)
