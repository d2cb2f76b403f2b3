"""Service exceptions and helpers for producing safe client-facing errors."""
from __future__ import annotations

import html
import re
from typing import Any, Dict, Optional

from posterai.config import get_settings


class ErrorMessages:
    UNAUTHORIZED = "Authentication required"
    FORBIDDEN = "Access denied"
    NOT_FOUND = "Resource not found"
    BAD_REQUEST = "Invalid request"
    RATE_LIMIT = "Too many requests. Please try again later"
    INTERNAL_ERROR = "An internal error occurred"
    VALIDATION_ERROR = "Invalid input data"
    NETWORK_ERROR = "Network error. Please try again"
    SERVICE_UNAVAILABLE = "Service temporarily unavailable"
    CONTENT_POLICY = "The request was blocked by the content policy. Please change the wording or images"


class PosterAIError(Exception):
    """Base error carrying the HTTP status a route should answer with."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ContentPolicyError(PosterAIError):
    status_code = 400
    code = "CONTENT_POLICY"


class ImageGenerationError(PosterAIError):
    status_code = 500
    code = "GENERATION_FAILED"


class UpstreamQuotaError(PosterAIError):
    status_code = 429
    code = "UPSTREAM_QUOTA"


class InvalidImageError(PosterAIError):
    status_code = 400
    code = "INVALID_IMAGE"


class UserStoreError(PosterAIError):
    status_code = 400
    code = "USER_STORE"


class JobNotFound(PosterAIError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


def sanitize_error(error: BaseException | None, public_message: str | None = None) -> Dict[str, Any]:
    """Return an error body that only leaks internals outside production."""

    message = public_message or ErrorMessages.INTERNAL_ERROR
    code = getattr(error, "code", None) or "INTERNAL_ERROR"
    if get_settings().is_production:
        return {"message": message, "code": code}

    body: Dict[str, Any] = {"message": message, "code": code}
    if error is not None:
        body["details"] = str(error)
    return body


def sanitize_input(text: str) -> str:
    """HTML-escape user supplied text before echoing it back."""

    return html.escape(text, quote=True).replace("/", "&#x2F;")


def mask_sensitive(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "*" * (len(value) - visible)


_EMAIL_RE = re.compile(r"^([^@]+)@(.+)$")


def mask_email(email: Optional[str]) -> str:
    if not email:
        return ""
    match = _EMAIL_RE.match(email)
    if not match:
        return mask_sensitive(email)
    local, domain = match.groups()
    masked_local = local[:2] + "*" * max(len(local) - 2, 0)
    return f"{masked_local}@{domain}"


__all__ = [
    "ErrorMessages",
    "PosterAIError",
    "ContentPolicyError",
    "ImageGenerationError",
    "UpstreamQuotaError",
    "InvalidImageError",
    "UserStoreError",
    "JobNotFound",
    "sanitize_error",
    "sanitize_input",
    "mask_sensitive",
    "mask_email",
]
