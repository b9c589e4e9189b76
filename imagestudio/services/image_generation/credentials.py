"""
API credential supply. Acquisition of the key is owned elsewhere; this only reads it.
"""
from typing import Protocol

from imagestudio.core.config import settings
from imagestudio.services.image_generation.base import MissingCredentialError

# Placeholder some hosts inject when the variable is unset
_ABSENT_VALUES = frozenset({"", "undefined", "none", "null"})


class CredentialProvider(Protocol):
    def get_api_key(self) -> str | None:
        ...


def _normalize(value: str | None) -> str | None:
    value = (value or "").strip()
    return None if value.lower() in _ABSENT_VALUES else value


class SettingsCredentialProvider:
    """Reads GEMINI_API_KEY through application settings."""

    def __init__(self, app_settings=None) -> None:
        self._settings = app_settings or settings

    def get_api_key(self) -> str | None:
        return _normalize(getattr(self._settings, "gemini_api_key", None))


class StaticCredentialProvider:
    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key

    def get_api_key(self) -> str | None:
        return _normalize(self._api_key)


def require_api_key(credentials: CredentialProvider) -> str:
    api_key = credentials.get_api_key()
    if not api_key:
        raise MissingCredentialError()
    return api_key
