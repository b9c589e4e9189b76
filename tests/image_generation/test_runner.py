"""
Tests for ImageGenerator: retry budget, backoff delays, tier fallback, terminal kinds.
The backend is a scripted stub; sleep and jitter are injected.
"""
import asyncio

import httpx
import pytest

from conftest import (
    HIGH_MODEL,
    NOT_FOUND,
    PERMISSION_DENIED,
    RATE_LIMITED,
    STANDARD_MODEL,
    ScriptedProvider,
    http_error,
    image_response,
)
from imagestudio.schemas.generation import GenerationRequest, ImageBlob
from imagestudio.services.image_generation.base import ImageGenerationError
from imagestudio.services.image_generation.credentials import StaticCredentialProvider
from imagestudio.services.image_generation.failure_types import (
    FALLBACK_FAILED_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    RATE_LIMITED_MESSAGE,
    FailureKind,
)
from imagestudio.services.image_generation.model_selector import HighTierConfig, ModelTier, StandardTierConfig
from imagestudio.services.image_generation.runner import AttemptState, ImageGenerator, next_state


def make_generator(provider, credentials, sleep, jitter, **kwargs):
    return ImageGenerator(
        provider,
        credentials,
        standard_model=STANDARD_MODEL,
        high_model=HIGH_MODEL,
        max_retries=3,
        backoff_base_seconds=2.0,
        jitter_seconds=0.5,
        sleep=sleep,
        jitter=jitter,
        **kwargs,
    )


def run(coro):
    return asyncio.run(coro)


class TestNextState:
    def test_success_is_done(self):
        assert next_state(AttemptState.ATTEMPT_PRIMARY, None, ModelTier.HIGH, 0, 3) is AttemptState.DONE

    def test_rate_limited_backs_off_until_budget_spent(self):
        for used in range(3):
            assert next_state(
                AttemptState.ATTEMPT_PRIMARY, FailureKind.RATE_LIMITED, ModelTier.STANDARD, used, 3
            ) is AttemptState.BACKOFF
        assert next_state(
            AttemptState.ATTEMPT_PRIMARY, FailureKind.RATE_LIMITED, ModelTier.STANDARD, 3, 3
        ) is AttemptState.FAILED

    @pytest.mark.parametrize("kind", [FailureKind.PERMISSION_DENIED, FailureKind.NOT_FOUND])
    def test_fallback_only_from_high_tier(self, kind):
        assert next_state(AttemptState.ATTEMPT_PRIMARY, kind, ModelTier.HIGH, 0, 3) is AttemptState.ATTEMPT_FALLBACK
        assert next_state(AttemptState.ATTEMPT_PRIMARY, kind, ModelTier.STANDARD, 0, 3) is AttemptState.FAILED

    @pytest.mark.parametrize("kind", [FailureKind.MALFORMED, FailureKind.UNKNOWN])
    def test_other_failures_are_terminal(self, kind):
        assert next_state(AttemptState.ATTEMPT_PRIMARY, kind, ModelTier.HIGH, 0, 3) is AttemptState.FAILED

    def test_fallback_failure_is_terminal(self):
        assert next_state(
            AttemptState.ATTEMPT_FALLBACK, FailureKind.RATE_LIMITED, ModelTier.STANDARD, 0, 3
        ) is AttemptState.FAILED

    def test_no_transition_out_of_done(self):
        with pytest.raises(ValueError):
            next_state(AttemptState.DONE, None, ModelTier.STANDARD, 0, 3)


class TestSuccess:
    def test_returns_exact_data_uri(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [image_response("QUJD", "image/jpeg")]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        data_uri = run(generator.generate_image(GenerationRequest(prompt="a cat")))

        assert data_uri == "data:image/jpeg;base64,QUJD"
        assert recording_sleep.delays == []

    def test_1k_uses_standard_tier_without_image_size(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [image_response()]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        run(generator.generate(GenerationRequest(prompt="a cat", resolution="1K", aspect_ratio="4:3")))

        (call,) = provider.calls
        assert call["model"] == STANDARD_MODEL
        assert type(call["config"]) is StandardTierConfig
        assert call["config"].generation_config()["imageConfig"] == {"aspectRatio": "4:3"}
        assert call["api_key"] == "test-key"

    @pytest.mark.parametrize("resolution", ["2K", "4K"])
    def test_high_resolution_uses_high_tier(self, resolution, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({HIGH_MODEL: [image_response()]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        result = run(generator.generate(GenerationRequest(prompt="a cat", resolution=resolution)))

        (call,) = provider.calls
        assert call["model"] == HIGH_MODEL
        assert call["config"].generation_config()["imageConfig"]["imageSize"] == resolution
        assert result.model == HIGH_MODEL

    def test_seed_and_creativity_passed_through(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [image_response()]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        run(generator.generate(GenerationRequest(prompt="a cat", seed=1234, creativity=0.7)))

        generation_config = provider.calls[0]["config"].generation_config()
        assert generation_config["seed"] == 1234
        assert generation_config["temperature"] == 0.7


class TestRateLimitRetry:
    def test_always_rate_limited_makes_four_attempts(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [RATE_LIMITED]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.RATE_LIMITED
        assert exc_info.value.message == RATE_LIMITED_MESSAGE
        assert len(provider.calls) == 4
        assert recording_sleep.delays == [2.25, 4.25, 8.25]

    def test_recovers_after_rate_limit(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [RATE_LIMITED, RATE_LIMITED, image_response("T0s=")]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        result = run(generator.generate(GenerationRequest(prompt="a cat")))

        assert result.data_uri == "data:image/png;base64,T0s="
        assert [a.outcome for a in result.attempts] == ["rate_limited", "rate_limited", "success"]
        assert recording_sleep.delays == [2.25, 4.25]

    def test_quota_message_without_status_is_retried(self, credentials, recording_sleep, fixed_jitter):
        quota = ImageGenerationError("You exceeded your current quota", detail={})
        provider = ScriptedProvider({STANDARD_MODEL: [quota, image_response()]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        run(generator.generate(GenerationRequest(prompt="a cat")))

        assert len(provider.calls) == 2

    def test_rate_limited_high_tier_does_not_fall_back(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({HIGH_MODEL: [RATE_LIMITED]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="4K")))

        assert exc_info.value.kind is FailureKind.RATE_LIMITED
        assert provider.calls_for(STANDARD_MODEL) == []

    def test_zero_retry_budget(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [RATE_LIMITED]})
        generator = ImageGenerator(
            provider, credentials, standard_model=STANDARD_MODEL, high_model=HIGH_MODEL,
            max_retries=0, sleep=recording_sleep, jitter=fixed_jitter,
        )

        with pytest.raises(ImageGenerationError):
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert len(provider.calls) == 1


class TestFallback:
    @pytest.mark.parametrize("error", [PERMISSION_DENIED, NOT_FOUND])
    def test_high_tier_refused_falls_back_to_standard(self, error, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({
            HIGH_MODEL: [error],
            STANDARD_MODEL: [image_response("RkI=", "image/png")],
        })
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)
        request = GenerationRequest(prompt="a cat", resolution="2K", seed=9, creativity=0.3, aspect_ratio="16:9")

        result = run(generator.generate(request))

        assert result.data_uri == "data:image/png;base64,RkI="
        assert result.model == STANDARD_MODEL
        high_call, fallback_call = provider.calls
        assert high_call["model"] == HIGH_MODEL
        assert fallback_call["model"] == STANDARD_MODEL
        assert fallback_call["parts"] == high_call["parts"]
        fallback_config = fallback_call["config"]
        assert type(fallback_config) is StandardTierConfig
        assert "imageSize" not in fallback_config.generation_config()["imageConfig"]
        assert fallback_config.system_instruction == high_call["config"].system_instruction
        assert (fallback_config.seed, fallback_config.temperature) == (9, 0.3)
        assert recording_sleep.delays == []

    def test_both_tiers_refused_is_fallback_failed(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({HIGH_MODEL: [PERMISSION_DENIED], STANDARD_MODEL: [PERMISSION_DENIED]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="4K")))

        assert exc_info.value.kind is FailureKind.FALLBACK_FAILED
        assert exc_info.value.message == FALLBACK_FAILED_MESSAGE
        assert len(provider.calls_for(HIGH_MODEL)) == 1
        assert len(provider.calls_for(STANDARD_MODEL)) == 1

    def test_rate_limited_fallback_is_not_retried(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({HIGH_MODEL: [NOT_FOUND], STANDARD_MODEL: [RATE_LIMITED]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="2K")))

        assert exc_info.value.kind is FailureKind.FALLBACK_FAILED
        assert exc_info.value.detail["fallback_kind"] == "rate_limited"
        assert len(provider.calls) == 2
        assert recording_sleep.delays == []

    def test_permission_denied_on_standard_tier_surfaces(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [PERMISSION_DENIED]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="1K")))

        assert exc_info.value.kind is FailureKind.PERMISSION_DENIED
        assert exc_info.value.message == PERMISSION_DENIED_MESSAGE
        assert len(provider.calls) == 1

    def test_not_found_on_standard_tier_surfaces(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [NOT_FOUND]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.NOT_FOUND
        assert len(provider.calls) == 1


class TestTerminalFailures:
    def test_malformed_response_surfaces_immediately(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({HIGH_MODEL: [{"candidates": []}]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="2K")))

        assert exc_info.value.kind is FailureKind.MALFORMED
        assert len(provider.calls) == 1

    def test_unknown_error_message_is_cleaned(self, credentials, recording_sleep, fixed_jitter):
        raw = ImageGenerationError('{"error": {"message": "Internal error encountered."}}', detail={})
        provider = ScriptedProvider({STANDARD_MODEL: [raw]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.UNKNOWN
        assert exc_info.value.message == "Internal error encountered."
        assert exc_info.value.__cause__ is raw

    def test_server_error_is_not_retried(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [http_error(500, "backend exploded", "INTERNAL")]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.UNKNOWN
        assert len(provider.calls) == 1


    @pytest.mark.parametrize(
        "response",
        [
            {"candidates": [{"content": {"parts": ["oops"]}}]},
            {"candidates": [{"content": "text"}]},
            {"candidates": {"0": {}}},
            {"candidates": [{"content": {"parts": [{"inlineData": "QUJD"}]}}]},
            ["not", "a", "dict"],
        ],
    )
    def test_off_shape_response_is_malformed(self, response, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [response]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.MALFORMED
        assert len(provider.calls) == 1

    def test_unexpected_backend_exception_is_unknown(self, credentials, recording_sleep, fixed_jitter):
        raw = httpx.InvalidURL("Invalid URL 'ht!tp://'")
        provider = ScriptedProvider({HIGH_MODEL: [raw]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat", resolution="4K")))

        assert exc_info.value.kind is FailureKind.UNKNOWN
        assert exc_info.value.message == "Invalid URL 'ht!tp://'"
        assert exc_info.value.__cause__.__cause__ is raw
        assert len(provider.calls) == 1
        assert recording_sleep.delays == []

    def test_retry_after_is_logged_with_attempt(self, credentials, recording_sleep, fixed_jitter, caplog):
        error = http_error(429, "Resource has been exhausted (e.g. check quota).", "RESOURCE_EXHAUSTED")
        error.detail["retry_after"] = "30"
        provider = ScriptedProvider({STANDARD_MODEL: [error, image_response()]})
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

        with caplog.at_level("INFO", logger="imagestudio.services.image_generation.runner"):
            run(generator.generate(GenerationRequest(prompt="a cat")))

        attempts = [r for r in caplog.records if r.getMessage() == "image_generation_attempt"]
        assert attempts[0].retry_after == "30"
        assert attempts[0].failure_kind == "rate_limited"
        assert not hasattr(attempts[1], "retry_after")


class TestLocalFailures:
    def test_half_style_pair_fails_without_network(self, credentials, recording_sleep, fixed_jitter):
        provider = ScriptedProvider(default=image_response())
        generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)
        request = GenerationRequest(prompt="x", content_image=ImageBlob(data="QUJD", mime_type="image/png"))

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(request))

        assert exc_info.value.kind is FailureKind.VALIDATION
        assert provider.calls == []

    @pytest.mark.parametrize("api_key", [None, "", "undefined"])
    def test_missing_credential_fails_without_network(self, api_key, recording_sleep, fixed_jitter):
        provider = ScriptedProvider(default=image_response())
        generator = make_generator(provider, StaticCredentialProvider(api_key), recording_sleep, fixed_jitter)

        with pytest.raises(ImageGenerationError) as exc_info:
            run(generator.generate(GenerationRequest(prompt="a cat")))

        assert exc_info.value.kind is FailureKind.MISSING_CREDENTIAL
        assert provider.calls == []


class TestCancellation:
    def test_cancel_during_backoff_abandons_retries(self, credentials, fixed_jitter):
        provider = ScriptedProvider({STANDARD_MODEL: [RATE_LIMITED]})

        async def scenario():
            started = asyncio.Event()

            async def slow_sleep(delay):
                started.set()
                await asyncio.sleep(3600)

            generator = make_generator(provider, credentials, slow_sleep, fixed_jitter)
            task = asyncio.create_task(generator.generate(GenerationRequest(prompt="a cat")))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        run(scenario())

        assert len(provider.calls) == 1


def test_high_tier_config_type_on_primary_call(credentials, recording_sleep, fixed_jitter):
    provider = ScriptedProvider({HIGH_MODEL: [image_response()]})
    generator = make_generator(provider, credentials, recording_sleep, fixed_jitter)

    result = run(generator.generate(GenerationRequest(prompt="a cat", resolution="4K")))

    assert isinstance(provider.calls[0]["config"], HighTierConfig)
    assert [(a.model, a.tier, a.outcome) for a in result.attempts] == [(HIGH_MODEL, ModelTier.HIGH, "success")]
