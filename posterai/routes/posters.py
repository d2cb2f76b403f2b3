from __future__ import annotations

import logging
import uuid
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from posterai.config import UNLIMITED_DAILY_LIMIT
from posterai.routes.deps import consume_daily_quota, to_http
from posterai.schemas.admin import MeResponse, UsageInfo
from posterai.schemas.poster import GeneratePosterResponse, JobCreated, JobStatus, PosterFormData
from posterai.services.auth import CurrentUser, require_current_user
from posterai.services.errors import ErrorMessages, PosterAIError, mask_email
from posterai.services.image_provider import ImageClient, get_image_client
from posterai.services.images import to_data_url
from posterai.services.job_store import JobStore, get_job_store
from posterai.services.poster import generate_poster, run_poster_job
from posterai.services.rate_limiter import DailyRateLimiter, get_daily_limiter
from posterai.services.storage_bridge import publish_image

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api", tags=["posters"])

Publisher = Callable[[bytes, str, str], str]


def get_publisher() -> Publisher:
    return publish_image


def _quota_key(user: CurrentUser) -> str:
    return f"{user.email}:generate"


@router.get("/me", response_model=MeResponse, response_model_by_alias=True)
def read_me(
    user: CurrentUser = Depends(require_current_user),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
) -> MeResponse:
    usage = limiter.get_usage(_quota_key(user), user.daily_limit)
    return MeResponse(
        email=user.email,
        name=user.name,
        is_admin=user.is_admin,
        daily_limit=user.daily_limit,
        usage=UsageInfo(
            used=usage["used"],
            remaining=usage["remaining"],
            limit=user.daily_limit,
            reset_at=usage["reset_at"].isoformat(),
            unlimited=user.daily_limit >= UNLIMITED_DAILY_LIMIT,
        ),
    )


@router.post("/jobs", response_model=JobCreated, response_model_by_alias=True)
def create_job(
    form: PosterFormData,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(require_current_user),
    store: JobStore = Depends(get_job_store),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
    client: ImageClient = Depends(get_image_client),
    publish: Publisher = Depends(get_publisher),
) -> JobCreated:
    quota = consume_daily_quota(
        limiter,
        _quota_key(user),
        user.daily_limit,
        message="You have reached today's generation limit",
    )

    job_id = uuid.uuid4().hex
    store.create(job_id, user.email)
    background_tasks.add_task(run_poster_job, job_id, form, store, client, publish)
    logger.info(
        "poster job queued",
        extra={"job_id": job_id, "user": mask_email(user.email), "remaining": quota.remaining},
    )
    return JobCreated(job_id=job_id, remaining=quota.remaining, reset_at=quota.reset_at)


@router.get("/jobs/{job_id}", response_model=JobStatus, response_model_by_alias=True)
def read_job(
    job_id: str,
    user: CurrentUser = Depends(require_current_user),
    store: JobStore = Depends(get_job_store),
) -> JobStatus:
    job = store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.user_id != user.email:
        raise HTTPException(status_code=403, detail=ErrorMessages.FORBIDDEN)
    return JobStatus(
        id=job.id,
        status=job.status,
        progress=job.progress,
        image_url=job.image_url,
        error=job.error,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


@router.post("/generate-poster", response_model=GeneratePosterResponse, response_model_by_alias=True)
def generate_poster_sync(
    form: PosterFormData,
    user: CurrentUser = Depends(require_current_user),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
    client: ImageClient = Depends(get_image_client),
) -> GeneratePosterResponse:
    consume_daily_quota(
        limiter,
        _quota_key(user),
        user.daily_limit,
        message="You have reached today's generation limit",
    )
    try:
        image = generate_poster(form, client)
    except PosterAIError as exc:
        logger.warning("poster generation failed: %s", exc.message)
        raise to_http(exc) from exc

    return GeneratePosterResponse(
        image_data=to_data_url(image.data, image.mime_type),
        form_data=form,
        message="Poster generated",
    )
