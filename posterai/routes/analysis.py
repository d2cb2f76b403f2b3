from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from posterai.config import get_settings
from posterai.routes.deps import api_rate_limit, consume_daily_quota, to_http
from posterai.schemas.analysis import (
    AnalyzeImageRequest,
    AnalyzeImageResponse,
    DesignBlueprint,
    ExtractBlueprintRequest,
    ExtractTextLayersRequest,
    ExtractTextLayersResponse,
)
from posterai.services import analysis
from posterai.services.auth import CurrentUser
from posterai.services.errors import PosterAIError, sanitize_error
from posterai.services.image_provider import ImageClient, get_image_client
from posterai.services.rate_limiter import DailyRateLimiter, get_daily_limiter

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api", tags=["analysis"])


def _parse_failure(exc: analysis.AnalysisParseError) -> HTTPException:
    detail = sanitize_error(exc, exc.message)
    if not get_settings().is_production:
        detail["raw"] = exc.raw
    return HTTPException(status_code=500, detail=detail)


@router.post("/analyze-image", response_model=AnalyzeImageResponse, response_model_by_alias=True)
def analyze_image(
    req: AnalyzeImageRequest,
    user: CurrentUser = Depends(api_rate_limit),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
    client: ImageClient = Depends(get_image_client),
) -> AnalyzeImageResponse:
    try:
        analysis.check_analysis_image(req.image_data)
    except PosterAIError as exc:
        raise to_http(exc) from exc
    consume_daily_quota(
        limiter,
        f"{user.email}:analyze",
        get_settings().quota.analysis_daily_limit,
        message="You have reached today's image analysis limit",
    )
    try:
        result = analysis.analyze_image(req.image_data, client)
    except analysis.AnalysisParseError as exc:
        logger.warning("analysis output was not JSON")
        raise _parse_failure(exc) from exc
    except PosterAIError as exc:
        raise to_http(exc) from exc
    return AnalyzeImageResponse(analysis=result, suggested=analysis.suggest_form(result))


@router.post("/extract-text-layers", response_model=ExtractTextLayersResponse, response_model_by_alias=True)
def extract_text_layers(
    req: ExtractTextLayersRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> ExtractTextLayersResponse:
    try:
        texts = analysis.extract_text_layers(req.image_data, client)
    except analysis.AnalysisParseError as exc:
        raise _parse_failure(exc) from exc
    except PosterAIError as exc:
        raise to_http(exc) from exc
    return ExtractTextLayersResponse(texts=texts)


@router.post("/extract-blueprint", response_model=DesignBlueprint, response_model_by_alias=True)
def extract_blueprint(
    req: ExtractBlueprintRequest,
    user: CurrentUser = Depends(api_rate_limit),
    client: ImageClient = Depends(get_image_client),
) -> DesignBlueprint:
    try:
        return analysis.extract_blueprint(req.image, client, req.text_layers)
    except analysis.AnalysisParseError as exc:
        raise _parse_failure(exc) from exc
    except PosterAIError as exc:
        raise to_http(exc) from exc
