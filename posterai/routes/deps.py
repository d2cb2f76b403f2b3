"""Shared route dependencies: limiter guards and service error translation."""
from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, Response

from posterai.config import UNLIMITED_DAILY_LIMIT, get_settings
from posterai.services.audit_log import extract_request_info
from posterai.services.auth import CurrentUser, require_current_user
from posterai.services.errors import (
    ErrorMessages,
    ImageGenerationError,
    PosterAIError,
    sanitize_error,
)
from posterai.services.rate_limiter import (
    DailyRateLimiter,
    RateLimitResult,
    WindowRateLimiter,
    get_admin_limiter,
    get_api_limiter,
)

logger = logging.getLogger("posterai")


def to_http(exc: PosterAIError) -> HTTPException:
    """Map a service error to an HTTPException without leaking internals on 5xx."""

    if exc.status_code >= 500:
        public = "Image generation failed" if isinstance(exc, ImageGenerationError) else ErrorMessages.INTERNAL_ERROR
        detail = sanitize_error(exc, public)
    else:
        detail = {"message": exc.message, "code": exc.code}
    return HTTPException(status_code=exc.status_code, detail=detail)


def client_ip(request: Request) -> str:
    info = extract_request_info(request)
    if info["ip_address"]:
        return info["ip_address"]
    return request.client.host if request.client else "unknown"


def _window_exceeded(limit: int) -> HTTPException:
    return HTTPException(
        status_code=429,
        detail={"message": ErrorMessages.RATE_LIMIT, "code": "RATE_LIMIT"},
        headers={
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": "0",
            "Retry-After": "60",
        },
    )


def admin_rate_limit(
    request: Request,
    response: Response,
    limiter: WindowRateLimiter = Depends(get_admin_limiter),
) -> None:
    limit = get_settings().quota.admin_per_minute
    ip = client_ip(request)
    result = limiter.check(limit, ip)
    if not result.success:
        logger.warning("admin rate limit exceeded", extra={"ip": ip})
        raise _window_exceeded(limit)
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)


def api_rate_limit(
    user: CurrentUser = Depends(require_current_user),
    limiter: WindowRateLimiter = Depends(get_api_limiter),
) -> CurrentUser:
    limit = get_settings().quota.api_per_minute
    if not limiter.check(limit, user.email).success:
        raise _window_exceeded(limit)
    return user


def consume_daily_quota(
    limiter: DailyRateLimiter,
    key: str,
    limit: int,
    *,
    message: str,
) -> RateLimitResult:
    """Charge one unit of *key*'s daily quota, raising 429 when it is spent."""

    if limit >= UNLIMITED_DAILY_LIMIT:
        return RateLimitResult(True, UNLIMITED_DAILY_LIMIT, limiter.next_reset())
    result = limiter.check(key, limit)
    if not result.allowed:
        reset_at = result.reset_at.isoformat()
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Daily limit reached",
                "message": message,
                "code": "RATE_LIMIT",
                "resetAt": reset_at,
            },
        )
    return result
