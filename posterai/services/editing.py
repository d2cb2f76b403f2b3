"""Image editing pipeline: flatten edit instructions into one model request."""
from __future__ import annotations

import logging
from typing import List

from posterai.schemas.edits import EditRequest, InsertRequest, RegionEditRequest, UnifiedEditRequest
from posterai.services.image_provider import GeneratedImage, ImageClient, Part, resolve_image_model
from posterai.services.images import decode_image_ref
from posterai.services.prompts import (
    build_edit_prompt,
    build_insert_prompt,
    build_region_edit_prompt,
    build_unified_edit_prompt,
)

logger = logging.getLogger(__name__)


def edit_image(req: EditRequest, client: ImageClient) -> GeneratedImage:
    parts: List[Part] = [decode_image_ref(req.image_data), build_edit_prompt(req.edit_prompt)]
    return client.generate_image(parts, model=resolve_image_model(req.model_mode))


def edit_region(req: RegionEditRequest, client: ImageClient) -> GeneratedImage:
    usages = []
    if req.insert_images_data:
        usages = [
            req.insert_images_usages[i] if i < len(req.insert_images_usages) else ""
            for i in range(len(req.insert_images_data))
        ]
    parts: List[Part] = [
        build_region_edit_prompt(req.mask_edit_prompt, usages),
        decode_image_ref(req.image_data),
        decode_image_ref(req.mask_data),
    ]
    parts.extend(decode_image_ref(item) for item in req.insert_images_data)
    return client.generate_image(parts, model=resolve_image_model(req.model_mode))


def insert_images(req: InsertRequest, client: ImageClient) -> GeneratedImage:
    inserts = req.inserts
    parts: List[Part] = [decode_image_ref(req.base_image_data)]
    parts.extend(decode_image_ref(item) for item in inserts)
    parts.append(build_insert_prompt(req.insert_prompt, len(inserts)))
    return client.generate_image(parts, model=resolve_image_model(req.model_mode))


def unified_edit(req: UnifiedEditRequest, client: ImageClient) -> GeneratedImage:
    model = resolve_image_model(req.model_mode)
    prompt = build_unified_edit_prompt(
        text_edits=req.text_edits,
        insert_images=req.insert_images,
        mask_prompt=req.mask_prompt,
        has_mask=bool(req.mask_data),
        general_prompt=req.general_prompt,
        original_dimensions=req.original_dimensions,
    )
    logger.info(
        "unified edit model=%s text_edits=%s inserts=%s mask=%s",
        model,
        len(req.text_edits),
        len(req.insert_images),
        bool(req.mask_data),
    )
    parts: List[Part] = [prompt, decode_image_ref(req.image_data)]
    if req.mask_data:
        parts.append(decode_image_ref(req.mask_data))
    parts.extend(decode_image_ref(image.data) for image in req.insert_images)
    return client.generate_image(parts, model=model)
