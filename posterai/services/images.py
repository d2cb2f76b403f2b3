from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Tuple

import requests
from PIL import Image, UnidentifiedImageError

from posterai.services.errors import InvalidImageError

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.+)$", re.S)
FETCH_TIMEOUT = 30


@dataclass
class ImageRef:
    data: bytes
    mime_type: str


def parse_data_url(value: str) -> Tuple[str, str]:
    """Split a ``data:`` URL into ``(mime_type, base64_payload)``."""

    match = DATA_URL_RE.match(value.strip())
    if not match:
        raise InvalidImageError("Invalid image data format")
    return match.group("mime").lower(), match.group("payload")


def decode_image_ref(value: str) -> ImageRef:
    """Resolve a data URL or an http(s) URL into raw bytes."""

    if not value:
        raise InvalidImageError("Image data is required")
    text = value.strip()
    if text.startswith(("http://", "https://")):
        return _fetch(text)

    mime, payload = parse_data_url(text)
    try:
        data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("Image data is not valid base64") from exc
    if not data:
        raise InvalidImageError("Image data is empty")
    return ImageRef(data=data, mime_type=mime)


def _fetch(url: str) -> ImageRef:
    try:
        resp = requests.get(url, timeout=FETCH_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("image fetch failed url=%s err=%s", url, exc)
        raise InvalidImageError("Failed to fetch image") from exc
    mime = (resp.headers.get("content-type") or "image/png").split(";")[0].strip().lower()
    return ImageRef(data=resp.content, mime_type=mime)


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def open_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Unsupported or corrupted image") from exc
    return image


def image_size(data: bytes) -> Tuple[int, int]:
    return open_image(data).size
