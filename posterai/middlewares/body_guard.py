from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("posterai")


class RejectHugeBody(BaseHTTPMiddleware):
    """Reject API writes whose body exceeds ``max_body_bytes`` with 413."""

    WATCH_PATH_PREFIXES = ("/api/",)

    def __init__(self, app, *, max_body_bytes: int | None = None, **_: Any) -> None:  # type: ignore[override]
        self.max_body_bytes = self._normalise_limit(max_body_bytes)
        super().__init__(app)

    @staticmethod
    def _normalise_limit(candidate: int | None) -> int | None:
        if candidate is None or candidate <= 0:
            return None
        return candidate

    def _too_large(self, content_length: int | None, body_len: int) -> bool:
        if self.max_body_bytes is None:
            return False
        if content_length and content_length > self.max_body_bytes:
            return True
        return body_len > self.max_body_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if self.max_body_bytes is None or request.method not in {"POST", "PUT", "PATCH"}:
            return await call_next(request)
        if not request.url.path.startswith(self.WATCH_PATH_PREFIXES):
            return await call_next(request)

        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start = time.time()

        header = request.headers.get("content-length")
        try:
            content_length = int(header) if header else None
        except (TypeError, ValueError):
            content_length = None

        if content_length and content_length > self.max_body_bytes:
            size = content_length
            body = b""
        else:
            body = await request.body()
            size = len(body)

        if self._too_large(content_length, size):
            logger.info("[guard] rid=%s path=%s rejected size=%s", rid, request.url.path, size)
            return JSONResponse(
                status_code=413,
                content={
                    "detail": {
                        "message": "Request body is too large",
                        "code": "REQUEST_TOO_LARGE",
                        "limit": self.max_body_bytes,
                    }
                },
            )

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": body, "more_body": False}

        response = await call_next(Request(request.scope, receive))
        logger.debug(
            "[guard] rid=%s path=%s size=%s status=%s dur_ms=%s",
            rid,
            request.url.path,
            size,
            response.status_code,
            int((time.time() - start) * 1000),
        )
        return response
