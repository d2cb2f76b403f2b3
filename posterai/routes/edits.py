from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, Depends

from posterai.routes.deps import api_rate_limit, to_http
from posterai.schemas.edits import (
    EditRequest,
    EditResponse,
    InsertRequest,
    RegionEditRequest,
    UnifiedEditRequest,
    UpscaleRequest,
    UpscaleResponse,
)
from posterai.schemas.poster import Dimensions
from posterai.services import editing
from posterai.services.auth import CurrentUser
from posterai.services.errors import PosterAIError
from posterai.services.image_provider import GeneratedImage, ImageClient, get_image_client
from posterai.services.images import to_data_url
from posterai.services.upscale import upscale_image

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api", tags=["edits"])

R = TypeVar("R")


def _run_edit(name: str, fn: Callable[[R, ImageClient], GeneratedImage], req: R, client: ImageClient) -> EditResponse:
    try:
        image = fn(req, client)
    except PosterAIError as exc:
        logger.warning("%s failed: %s", name, exc.message)
        raise to_http(exc) from exc
    return EditResponse(image_url=to_data_url(image.data, image.mime_type))


@router.post("/edit", response_model=EditResponse, response_model_by_alias=True)
def edit(
    req: EditRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> EditResponse:
    return _run_edit("edit", editing.edit_image, req, client)


@router.post("/edit-region", response_model=EditResponse, response_model_by_alias=True)
def edit_region(
    req: RegionEditRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> EditResponse:
    return _run_edit("region edit", editing.edit_region, req, client)


@router.post("/insert", response_model=EditResponse, response_model_by_alias=True)
def insert(
    req: InsertRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> EditResponse:
    return _run_edit("insert", editing.insert_images, req, client)


@router.post("/unified-edit", response_model=EditResponse, response_model_by_alias=True)
def unified_edit(
    req: UnifiedEditRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> EditResponse:
    return _run_edit("unified edit", editing.unified_edit, req, client)


@router.post("/upscale", response_model=UpscaleResponse, response_model_by_alias=True)
def upscale(
    req: UpscaleRequest,
    user: CurrentUser = Depends(api_rate_limit),
) -> UpscaleResponse:
    try:
        result = upscale_image(req.image_data, req.scale)
    except PosterAIError as exc:
        raise to_http(exc) from exc
    return UpscaleResponse(
        image_data=result.data_url,
        original_size=Dimensions(width=result.original_size[0], height=result.original_size[1]),
        upscaled_size=Dimensions(width=result.upscaled_size[0], height=result.upscaled_size[1]),
        scale=result.scale,
    )
