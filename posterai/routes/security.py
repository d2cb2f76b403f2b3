from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response

from posterai.services import audit_log as audit

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api", tags=["security"])


@router.post("/csp-report", status_code=204)
async def csp_report(
    request: Request,
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> Response:
    """Record a browser CSP violation report. Always answers 204."""

    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except (ValueError, UnicodeDecodeError):
        logger.warning("[csp] unreadable report (%s bytes)", len(body))
        return Response(status_code=204)

    report: Dict[str, Any] = {}
    if isinstance(payload, dict) and isinstance(payload.get("csp-report"), dict):
        report = payload["csp-report"]

    details = {
        "document_uri": report.get("document-uri"),
        "violated_directive": report.get("violated-directive"),
        "blocked_uri": report.get("blocked-uri"),
    }
    logger.warning(
        "[csp] violation directive=%s blocked=%s source=%s:%s",
        details["violated_directive"],
        details["blocked_uri"],
        report.get("source-file"),
        report.get("line-number"),
    )
    log.log(
        audit.AuditEvent(
            actor_email="system",
            action=audit.CSP_VIOLATION,
            details=details,
            success=False,
            **audit.extract_request_info(request),
        )
    )
    return Response(status_code=204)
