"""
Model tier selection by requested resolution and per-tier generation config.
Only the high tier carries imageSize; the standard tier config has no such field.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

HIGH_TIER_RESOLUTIONS = frozenset({"2K", "4K"})


class ModelTier(str, Enum):
    STANDARD = "standard"
    HIGH = "high"


@dataclass(frozen=True)
class StandardTierConfig:
    system_instruction: str
    aspect_ratio: str = "1:1"
    seed: int | None = None
    temperature: float | None = None

    tier = ModelTier.STANDARD

    def image_config(self) -> dict[str, Any]:
        return {"aspectRatio": self.aspect_ratio}

    def generation_config(self) -> dict[str, Any]:
        """generationConfig block of a generateContent payload."""
        config: dict[str, Any] = {
            "responseModalities": ["IMAGE"],
            "imageConfig": self.image_config(),
        }
        if self.seed is not None:
            config["seed"] = self.seed
        if self.temperature is not None:
            config["temperature"] = self.temperature
        return config


@dataclass(frozen=True)
class HighTierConfig(StandardTierConfig):
    image_size: str = "2K"

    tier = ModelTier.HIGH

    def image_config(self) -> dict[str, Any]:
        return {"aspectRatio": self.aspect_ratio, "imageSize": self.image_size}

    def downgrade(self) -> StandardTierConfig:
        """Same instruction, aspect ratio, seed and temperature without imageSize."""
        return StandardTierConfig(
            system_instruction=self.system_instruction,
            aspect_ratio=self.aspect_ratio,
            seed=self.seed,
            temperature=self.temperature,
        )


TierConfig = StandardTierConfig | HighTierConfig


def select_tier(resolution: str) -> ModelTier:
    return ModelTier.HIGH if resolution in HIGH_TIER_RESOLUTIONS else ModelTier.STANDARD


def build_tier_config(
    tier: ModelTier,
    *,
    system_instruction: str,
    aspect_ratio: str,
    resolution: str,
    seed: int | None = None,
    temperature: float | None = None,
) -> TierConfig:
    if tier is ModelTier.HIGH:
        return HighTierConfig(
            system_instruction=system_instruction,
            aspect_ratio=aspect_ratio,
            seed=seed,
            temperature=temperature,
            image_size=resolution,
        )
    return StandardTierConfig(
        system_instruction=system_instruction,
        aspect_ratio=aspect_ratio,
        seed=seed,
        temperature=temperature,
    )
