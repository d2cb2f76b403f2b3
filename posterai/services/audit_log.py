"""Append-only audit trail for security relevant actions."""
from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional

from loguru import logger
from starlette.requests import Request

from posterai.services.database import Database, get_database, to_iso, utcnow

SIGNIN_SUCCESS = "auth.signin.success"
SIGNIN_DENIED = "auth.signin.denied"
SIGNIN_FAILED = "auth.signin.failed"
USER_CREATED = "user.created"
USER_DELETED = "user.deleted"
USER_STATUS_CHANGED = "user.status.changed"
USER_ROLE_CHANGED = "user.role.changed"
USER_QUOTA_CHANGED = "user.quota.changed"
CSP_VIOLATION = "security.csp_violation"


@dataclass
class AuditEvent:
    actor_email: str
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True


@dataclass
class AuditRecord:
    id: int
    timestamp: str
    actor_email: str
    action: str
    resource_type: Optional[str]
    resource_id: Optional[str]
    details: Dict[str, Any]
    ip_address: Optional[str]
    user_agent: Optional[str]
    success: bool


def extract_request_info(request: Request) -> Dict[str, Optional[str]]:
    """Pull the client address and user agent from proxy aware headers."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address: Optional[str] = forwarded.split(",")[0].strip() or None
    else:
        ip_address = request.headers.get("x-real-ip")
    return {
        "ip_address": ip_address,
        "user_agent": request.headers.get("user-agent"),
    }


class AuditLog:
    def __init__(self, db: Database) -> None:
        self.db = db

    def log(self, event: AuditEvent) -> None:
        """Persist *event*. Storage failures are logged and never raised."""

        logger.bind(audit=True).info(
            "audit action={} actor={} resource={}:{} success={}",
            event.action,
            event.actor_email,
            event.resource_type,
            event.resource_id,
            event.success,
        )
        try:
            with self.db.connect() as con:
                con.execute(
                    """
                    INSERT INTO audit_logs (
                      timestamp, actor_email, action, resource_type, resource_id,
                      details, ip_address, user_agent, success
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        to_iso(utcnow()),
                        event.actor_email,
                        event.action,
                        event.resource_type,
                        event.resource_id,
                        json.dumps(event.details or {}, ensure_ascii=False, default=str),
                        event.ip_address,
                        event.user_agent,
                        1 if event.success else 0,
                    ),
                )
        except Exception:
            logger.exception("failed to write audit log for {}", event.action)

    def list(
        self,
        limit: int = 50,
        offset: int = 0,
        actor_email: Optional[str] = None,
        action: Optional[str] = None,
    ) -> List[AuditRecord]:
        clauses: List[str] = []
        params: List[Any] = []
        if actor_email:
            clauses.append("actor_email = ?")
            params.append(actor_email)
        if action:
            clauses.append("action = ?")
            params.append(action)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([max(int(limit), 1), max(int(offset), 0)])

        with self.db.connect() as con:
            rows = con.execute(
                f"SELECT * FROM audit_logs {where} ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
                params,
            ).fetchall()
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: sqlite3.Row) -> AuditRecord:
    try:
        details = json.loads(row["details"]) if row["details"] else {}
    except json.JSONDecodeError:
        details = {"raw": row["details"]}
    return AuditRecord(
        id=row["id"],
        timestamp=row["timestamp"],
        actor_email=row["actor_email"],
        action=row["action"],
        resource_type=row["resource_type"],
        resource_id=row["resource_id"],
        details=details,
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        success=bool(row["success"]),
    )


@lru_cache(maxsize=1)
def get_audit_log() -> AuditLog:
    return AuditLog(get_database())


def log_audit_event(event: AuditEvent) -> None:
    get_audit_log().log(event)


def get_audit_logs(
    limit: int = 50,
    offset: int = 0,
    actor_email: Optional[str] = None,
    action: Optional[str] = None,
) -> List[AuditRecord]:
    return get_audit_log().list(limit=limit, offset=offset, actor_email=actor_email, action=action)
