"""Poster generation: size resolution, model call and the background job worker."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List

from posterai.schemas.poster import Dimensions, PosterFormData
from posterai.services.errors import (
    ContentPolicyError,
    ErrorMessages,
    ImageGenerationError,
    PosterAIError,
    sanitize_error,
)
from posterai.services.image_provider import GeneratedImage, ImageClient, Part, resolve_image_model
from posterai.services.images import decode_image_ref
from posterai.services.job_store import JobStore
from posterai.services.prompts import build_poster_prompt

logger = logging.getLogger(__name__)

# Pixel sizes at 175 dpi.
OUTPUT_SIZES: Dict[str, Dict[str, Dimensions]] = {
    "b5": {
        "portrait": Dimensions(width=1255, height=1771),
        "landscape": Dimensions(width=1771, height=1255),
    },
    "a4": {
        "portrait": Dimensions(width=1448, height=2047),
        "landscape": Dimensions(width=2047, height=1448),
    },
    "b4": {
        "portrait": Dimensions(width=1771, height=2508),
        "landscape": Dimensions(width=2508, height=1771),
    },
    "a3": {
        "portrait": Dimensions(width=2047, height=2894),
        "landscape": Dimensions(width=2894, height=2047),
    },
    "custom": {
        "portrait": Dimensions(width=1920, height=1080),
        "landscape": Dimensions(width=1920, height=1080),
    },
}

DPI = 175
MM_PER_INCH = 25.4


def mm_to_px(mm: float) -> int:
    return round(mm * DPI / MM_PER_INCH)


def resolve_dimensions(form: PosterFormData) -> Dimensions:
    if form.output_size == "custom" and form.custom_width and form.custom_height:
        if form.custom_unit == "mm":
            return Dimensions(width=mm_to_px(form.custom_width), height=mm_to_px(form.custom_height))
        return Dimensions(width=form.custom_width, height=form.custom_height)
    return OUTPUT_SIZES[form.output_size][form.orientation]


def build_parts(form: PosterFormData, prompt: str) -> List[Part]:
    parts: List[Part] = []
    if form.uses_reference_image and form.sample_image_data:
        parts.append(decode_image_ref(form.sample_image_data))
    parts.append(prompt)
    for material in form.materials_data or []:
        parts.append(decode_image_ref(material))
    return parts


def generate_poster(form: PosterFormData, client: ImageClient) -> GeneratedImage:
    dimensions = resolve_dimensions(form)
    prompt = build_poster_prompt(form, dimensions)
    return client.generate_image(build_parts(form, prompt), model=resolve_image_model(form.model_mode))


def run_poster_job(
    job_id: str,
    form: PosterFormData,
    store: JobStore,
    client: ImageClient,
    publish: Callable[[bytes, str, str], str],
) -> None:
    """Generate a poster for *job_id*, reporting progress on the job row.

    Never raises: every failure ends with the job marked ``failed``.
    """

    try:
        store.update(job_id, status="processing", progress=10)
        if form.sample_image_data:
            logger.info("job %s: sample image received (%s)", job_id, form.sample_image_name or "unknown")

        dimensions = resolve_dimensions(form)
        store.update(job_id, progress=20)

        prompt = build_poster_prompt(form, dimensions)
        parts = build_parts(form, prompt)
        store.update(job_id, progress=30)

        model = resolve_image_model(form.model_mode)
        logger.info("job %s: generating %sx%s with %s", job_id, dimensions.width, dimensions.height, model)
        store.update(job_id, progress=60)

        image = client.generate_image(parts, model=model)
        store.update(job_id, progress=80)

        image_url = publish(image.data, image.mime_type, job_id)
        store.update(job_id, progress=90)

        store.update(job_id, status="completed", progress=100, image_url=image_url)
        logger.info("job %s: completed", job_id)
    except ContentPolicyError as exc:
        logger.warning("job %s: blocked by content policy", job_id)
        _fail(store, job_id, exc.message or ErrorMessages.CONTENT_POLICY)
    except PosterAIError as exc:
        logger.warning("job %s: failed: %s", job_id, exc.message)
        if exc.status_code >= 500:
            public = "Image generation failed" if isinstance(exc, ImageGenerationError) else None
            _fail(store, job_id, _public_error(exc, public))
        else:
            _fail(store, job_id, exc.message)
    except Exception as exc:
        logger.exception("job %s: unexpected failure", job_id)
        _fail(store, job_id, _public_error(exc))


def _public_error(exc: Exception, public: str | None = None) -> str:
    body = sanitize_error(exc, public)
    return body.get("details") or body["message"]


def _fail(store: JobStore, job_id: str, message: str) -> None:
    try:
        store.update(job_id, status="failed", progress=0, error=message)
    except PosterAIError:
        logger.error("job %s vanished before its failure could be recorded", job_id)
