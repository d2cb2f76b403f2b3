from __future__ import annotations

import logging
from typing import Any, List

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from posterai.config import GeminiConfig
from posterai.services.errors import (
    ContentPolicyError,
    ErrorMessages,
    ImageGenerationError,
    UpstreamQuotaError,
)
from posterai.services.image_provider.base import GeneratedImage, Part
from posterai.services.images import ImageRef

logger = logging.getLogger(__name__)

BLOCKED_FINISH_REASONS = {"SAFETY", "RECITATION", "PROHIBITED_CONTENT", "BLOCKLIST", "IMAGE_SAFETY"}


def _finish_reason_name(candidate: Any) -> str | None:
    reason = getattr(candidate, "finish_reason", None)
    if reason is None:
        return None
    return getattr(reason, "name", None) or str(reason).rsplit(".", 1)[-1]


def _to_contents(parts: List[Part]) -> List[Any]:
    contents: List[Any] = []
    for part in parts:
        if isinstance(part, ImageRef):
            contents.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
        else:
            contents.append(part)
    return contents


def extract_image(resp: Any) -> GeneratedImage:
    """Return the first inline image in a ``generate_content`` response."""

    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        feedback = getattr(resp, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ContentPolicyError(ErrorMessages.CONTENT_POLICY)
        raise ImageGenerationError("No candidates returned from Gemini")

    candidate = candidates[0]
    reason = _finish_reason_name(candidate)
    if reason in BLOCKED_FINISH_REASONS:
        raise ContentPolicyError(ErrorMessages.CONTENT_POLICY)

    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    if reason == "OTHER" or not parts:
        raise ImageGenerationError(
            "Image generation failed. Please try different wording or images"
        )

    texts: List[str] = []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline else None
        if data:
            mime = getattr(inline, "mime_type", None) or "image/png"
            if mime.startswith("image/"):
                return GeneratedImage(data=bytes(data), mime_type=mime)
        text = getattr(part, "text", None)
        if text:
            texts.append(text)

    if texts:
        logger.info("gemini answered with text only: %s", " ".join(texts)[:200])
    raise ImageGenerationError("No image data in Gemini response")


class GeminiImageClient:
    """google-genai backed client for image and text generation."""

    def __init__(self, config: GeminiConfig) -> None:
        if config.use_vertex:
            self.client = genai.Client(
                vertexai=True,
                project=config.project_id,
                location=config.location,
            )
        else:
            self.client = genai.Client(api_key=config.api_key)
        self.config = config

    def _call(self, *, model: str, parts: List[Part], config: types.GenerateContentConfig) -> Any:
        try:
            return self.client.models.generate_content(
                model=model,
                contents=_to_contents(parts),
                config=config,
            )
        except genai_errors.APIError as exc:
            if getattr(exc, "code", None) == 429:
                raise UpstreamQuotaError("Gemini quota exhausted, please retry later") from exc
            logger.warning("gemini request failed model=%s code=%s", model, getattr(exc, "code", None))
            raise ImageGenerationError(f"Gemini request failed: {exc}", status_code=502) from exc

    def generate_image(self, parts: List[Part], *, model: str) -> GeneratedImage:
        resp = self._call(
            model=model,
            parts=parts,
            config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        )
        return extract_image(resp)

    def generate_text(self, parts: List[Part], *, model: str, json_output: bool = False) -> str:
        config = types.GenerateContentConfig(
            response_mime_type="application/json" if json_output else None,
        )
        resp = self._call(model=model, parts=parts, config=config)
        candidates = getattr(resp, "candidates", None) or []
        if candidates and _finish_reason_name(candidates[0]) in BLOCKED_FINISH_REASONS:
            raise ContentPolicyError(ErrorMessages.CONTENT_POLICY)
        text = getattr(resp, "text", None)
        if not text:
            raise ImageGenerationError("Empty response from Gemini")
        return text
