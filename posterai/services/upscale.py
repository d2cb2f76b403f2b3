from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from posterai.services.images import decode_image_ref, open_image, to_data_url

logger = logging.getLogger(__name__)

MIN_SCALE = 1.5
MAX_SCALE = 3.0
DEFAULT_SCALE = 2.0


@dataclass
class UpscaleResult:
    data_url: str
    original_size: Tuple[int, int]
    upscaled_size: Tuple[int, int]
    scale: float


def clamp_scale(scale: Optional[float]) -> float:
    if scale is None:
        return DEFAULT_SCALE
    return max(MIN_SCALE, min(MAX_SCALE, float(scale)))


def upscale_image(image_data: str, scale: Optional[float] = None) -> UpscaleResult:
    """Resize with Lanczos resampling and return a lossless PNG data URL."""

    factor = clamp_scale(scale)
    source = open_image(decode_image_ref(image_data).data)
    width, height = source.size
    target = (round(width * factor), round(height * factor))

    if source.mode not in ("RGB", "RGBA"):
        source = source.convert("RGBA")
    resized = source.resize(target, Image.Resampling.LANCZOS)

    buffer = BytesIO()
    resized.save(buffer, format="PNG", compress_level=0)
    logger.info("upscaled %sx%s -> %sx%s (x%s)", width, height, target[0], target[1], factor)
    return UpscaleResult(
        data_url=to_data_url(buffer.getvalue(), "image/png"),
        original_size=(width, height),
        upscaled_size=target,
        scale=factor,
    )
