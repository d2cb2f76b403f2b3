from __future__ import annotations

import asyncio
import datetime as dt
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from posterai import __version__
from posterai.config import get_settings
from posterai.middlewares.body_guard import RejectHugeBody
from posterai.middlewares.security_headers import SecurityHeaders
from posterai.routes import admin, analysis, auth, edits, posters, security
from posterai.services.errors import ErrorMessages, PosterAIError, sanitize_error
from posterai.services.job_store import get_job_store
from posterai.services.rate_limiter import get_daily_limiter

settings = get_settings()
LOG_LEVEL = settings.log_level

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("uvicorn").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.error").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.access").setLevel(LOG_LEVEL)
logging.getLogger("posterai").setLevel(LOG_LEVEL)

log = logging.getLogger("posterai")


def run_maintenance() -> dict[str, int]:
    """Drop expired jobs and stale daily quota records."""

    max_age = dt.timedelta(seconds=settings.jobs.retention_seconds)
    jobs = get_job_store().cleanup(max_age)
    quotas = get_daily_limiter().cleanup()
    if jobs or quotas:
        log.info("maintenance removed jobs=%s quota_records=%s", jobs, quotas)
    return {"jobs": jobs, "quota_records": quotas}


async def _maintenance_loop(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(run_maintenance)
        except Exception:
            log.exception("maintenance pass failed")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    interval = settings.jobs.cleanup_interval_seconds
    task = asyncio.create_task(_maintenance_loop(interval)) if interval > 0 else None
    log.info("posterai %s starting (environment=%s)", __version__, settings.environment)
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task


app = FastAPI(title="PosterAI API", version=__version__, lifespan=lifespan)

app.add_middleware(RejectHugeBody, max_body_bytes=settings.guard.max_body_bytes)
app.add_middleware(SecurityHeaders, production=settings.is_production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=settings.allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.info("validation failed path=%s errors=%s", request.url.path, len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "message": ErrorMessages.VALIDATION_ERROR,
                "code": "VALIDATION_ERROR",
                "errors": jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"}),
            }
        },
    )


@app.exception_handler(PosterAIError)
async def service_exception_handler(request: Request, exc: PosterAIError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("unhandled service error path=%s: %s", request.url.path, exc.message)
        detail: dict[str, Any] = sanitize_error(exc)
    else:
        detail = {"message": exc.message, "code": exc.code}
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


@app.get("/", include_in_schema=False)
def root() -> dict[str, Any]:
    return {"service": "posterai", "ok": True}


@app.head("/", include_in_schema=False)
def root_head() -> Response:
    return Response(status_code=200)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


app.include_router(auth.router)
app.include_router(posters.router)
app.include_router(edits.router)
app.include_router(analysis.router)
app.include_router(admin.router)
app.include_router(security.router)
