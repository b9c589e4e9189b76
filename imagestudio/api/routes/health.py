from fastapi import APIRouter, Response

from imagestudio.services.image_generation.credentials import SettingsCredentialProvider


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response) -> dict:
    """Readiness probe - returns 503 if no Gemini API key is configured."""
    if SettingsCredentialProvider().get_api_key() is None:
        response.status_code = 503
        return {"status": "not_ready", "error": "missing_credential"}
    return {"status": "ready"}
