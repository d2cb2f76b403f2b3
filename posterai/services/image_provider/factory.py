"""Image client factory backed by google-genai."""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from posterai.config import get_settings
from posterai.services.errors import ErrorMessages

from .base import ImageClient
from .genai_provider import GeminiImageClient

_CLIENT: Optional[ImageClient] = None


def get_image_client() -> ImageClient:
    """Return the cached Gemini client, or 503 when no credentials are set."""

    global _CLIENT
    if _CLIENT is None:
        gemini = get_settings().gemini
        if not gemini.is_configured:
            raise HTTPException(status_code=503, detail=ErrorMessages.SERVICE_UNAVAILABLE)
        _CLIENT = GeminiImageClient(gemini)
    return _CLIENT


def resolve_image_model(model_mode: str | None = None) -> str:
    gemini = get_settings().gemini
    if model_mode == "development":
        return gemini.dev_image_model
    return gemini.image_model
