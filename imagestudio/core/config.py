"""
Application configuration.
All settings are loaded from environment variables (or a local .env file).
"""
import json

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The Gemini API key has an empty default: generation fails with
    missing_credential until it is set.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma separated origins. Empty = default list in main.py.
    cors_origins: str = ""

    # ===========================================
    # GOOGLE GEMINI (generateContent)
    # ===========================================
    gemini_api_key: str = ""  # Get from https://aistudio.google.com/apikey
    gemini_api_endpoint: str = "https://generativelanguage.googleapis.com"
    # Standard tier: 1K output, no imageSize control
    gemini_standard_tier_model: str = "gemini-2.5-flash-image"
    # High tier: 2K / 4K output via imageConfig.imageSize
    gemini_high_tier_model: str = "gemini-3-pro-image-preview"
    # Lightweight text model used for prompt enhancement
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_timeout: float = 180.0  # generation + download of the inline image
    # safetySettings for generateContent (JSON array or empty)
    gemini_safety_settings: str = ""

    # ===========================================
    # IMAGE GENERATION - RETRY POLICY
    # ===========================================
    # Only rate-limit failures consume retries; 3 retries = 4 attempts total
    image_generation_max_retries: int = 3
    # delay = base ** retry_number + uniform(0, jitter)
    image_generation_backoff_base_seconds: float = 2.0
    image_generation_jitter_seconds: float = 0.5

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("image_generation_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("image_generation_max_retries must be >= 0")
        return v

    @field_validator("gemini_safety_settings")
    @classmethod
    def validate_safety_settings(cls, v: str) -> str:
        """Reject safety settings that are not a JSON array."""
        v = (v or "").strip()
        if not v:
            return ""
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"gemini_safety_settings is not valid JSON: {e}") from e
        if not isinstance(parsed, list):
            raise ValueError("gemini_safety_settings must be a JSON array")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
