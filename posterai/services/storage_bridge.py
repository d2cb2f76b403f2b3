"""Decide where a finished image lives: object storage or an inline data URL."""
from __future__ import annotations

import logging
import mimetypes
from typing import Dict, Optional

from posterai.services.images import to_data_url
from posterai.services.r2_client import make_key, put_bytes, storage_enabled

logger = logging.getLogger(__name__)

POSTER_FOLDER = "posters"


def _normalise_ext(ext: str) -> str:
    cleaned = (ext or "").strip().lstrip(".").lower()
    return cleaned or "png"


def store_image_and_url(
    data: bytes,
    *,
    ext: str = "png",
    content_type: Optional[str] = None,
    key: Optional[str] = None,
) -> Dict[str, str]:
    """Upload *data* to R2 and describe where it went."""

    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"expected bytes, got {type(data).__name__}")

    suffix = _normalise_ext(ext)
    object_key = key.lstrip("/") if key else make_key(POSTER_FOLDER, f"poster.{suffix}")
    mime = content_type or mimetypes.types_map.get(f".{suffix}") or "image/png"

    url = put_bytes(object_key, bytes(data), content_type=mime)
    if url is None:
        raise RuntimeError(f"upload to {object_key} failed")
    return {"key": object_key, "url": url, "content_type": mime}


def publish_image(data: bytes, mime_type: str, name: str) -> str:
    """Return a URL for a generated image, falling back to a data URL."""

    if not storage_enabled():
        return to_data_url(data, mime_type)
    suffix = _normalise_ext(mimetypes.guess_extension(mime_type) or "png")
    try:
        stored = store_image_and_url(
            data,
            ext=suffix,
            content_type=mime_type,
            key=make_key(POSTER_FOLDER, f"{name}.{suffix}"),
        )
    except RuntimeError as exc:
        logger.warning("keeping %s inline: %s", name, exc)
        return to_data_url(data, mime_type)
    return stored["url"]
