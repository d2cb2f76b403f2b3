from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from posterai.routes.deps import admin_rate_limit, to_http
from posterai.schemas.admin import (
    AddUserRequest,
    AdminCheckResponse,
    AuditLogListResponse,
    AuditLogOut,
    ToggleAdminRequest,
    UpdateUserRequest,
    UserListResponse,
    UserOut,
    UserResponse,
)
from posterai.services import audit_log as audit
from posterai.services.auth import CurrentUser, optional_current_user, require_admin_user
from posterai.services.errors import UserStoreError, mask_email
from posterai.services.users import AllowedUser, UserStore, get_user_store

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _out(user: AllowedUser) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        is_active=user.is_active,
        is_admin=user.is_admin,
        daily_limit=user.daily_limit,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _record(
    log: audit.AuditLog,
    request: Request,
    actor: CurrentUser,
    action: str,
    user: AllowedUser,
    details: Optional[dict] = None,
) -> None:
    log.log(
        audit.AuditEvent(
            actor_email=actor.email,
            action=action,
            resource_type="user",
            resource_id=str(user.id),
            details={"targetEmail": user.email, **(details or {})},
            **audit.extract_request_info(request),
        )
    )


@router.get("/check", response_model=AdminCheckResponse, response_model_by_alias=True)
def check_admin(user: Optional[CurrentUser] = Depends(optional_current_user)) -> AdminCheckResponse:
    return AdminCheckResponse(is_admin=bool(user and user.is_admin))


@router.get(
    "/users",
    response_model=UserListResponse,
    response_model_by_alias=True,
    dependencies=[Depends(admin_rate_limit)],
)
def list_users(
    admin: CurrentUser = Depends(require_admin_user),
    users: UserStore = Depends(get_user_store),
) -> UserListResponse:
    return UserListResponse(users=[_out(u) for u in users.list_users()])


@router.post("/users", response_model=UserResponse, response_model_by_alias=True)
def add_user(
    payload: AddUserRequest,
    request: Request,
    admin: CurrentUser = Depends(require_admin_user),
    users: UserStore = Depends(get_user_store),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> UserResponse:
    try:
        user = users.add_user(payload.email, payload.name)
    except UserStoreError as exc:
        raise to_http(exc) from exc
    _record(log, request, admin, audit.USER_CREATED, user, {"name": user.name})
    return UserResponse(user=_out(user))


@router.delete("/users")
def delete_user(
    request: Request,
    id: Optional[int] = Query(default=None),
    email: Optional[str] = Query(default=None),
    admin: CurrentUser = Depends(require_admin_user),
    users: UserStore = Depends(get_user_store),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> dict:
    if id is None or not email:
        raise HTTPException(status_code=400, detail="User id and email are required")
    try:
        user = users.remove_user(id, email, admin.email)
    except UserStoreError as exc:
        logger.info("refused to remove %s: %s", mask_email(email), exc.message)
        raise to_http(exc) from exc
    _record(log, request, admin, audit.USER_DELETED, user)
    return {"success": True}


@router.patch("/users", response_model=UserResponse, response_model_by_alias=True)
def update_user(
    payload: UpdateUserRequest,
    request: Request,
    admin: CurrentUser = Depends(require_admin_user),
    users: UserStore = Depends(get_user_store),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> UserResponse:
    try:
        if payload.daily_limit is not None:
            before = users.get_user(payload.id)
            user = users.set_daily_limit(payload.id, payload.daily_limit)
            _record(
                log,
                request,
                admin,
                audit.USER_QUOTA_CHANGED,
                user,
                {"previousLimit": before.daily_limit if before else None, "newLimit": user.daily_limit},
            )
        elif payload.is_active is not None:
            user = users.set_active(payload.id, payload.is_active, admin.email)
            _record(
                log,
                request,
                admin,
                audit.USER_STATUS_CHANGED,
                user,
                {"newStatus": "active" if user.is_active else "inactive"},
            )
        else:
            raise HTTPException(status_code=400, detail="Invalid request")
    except UserStoreError as exc:
        raise to_http(exc) from exc
    return UserResponse(user=_out(user))


@router.put("/users", response_model=UserResponse, response_model_by_alias=True)
def toggle_admin(
    payload: ToggleAdminRequest,
    request: Request,
    admin: CurrentUser = Depends(require_admin_user),
    users: UserStore = Depends(get_user_store),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> UserResponse:
    try:
        user = users.set_admin(payload.id, payload.target_email, admin.email, payload.is_admin)
    except UserStoreError as exc:
        raise to_http(exc) from exc
    _record(
        log,
        request,
        admin,
        audit.USER_ROLE_CHANGED,
        user,
        {"newRole": "admin" if user.is_admin else "user"},
    )
    return UserResponse(user=_out(user))


@router.get("/audit-logs", response_model=AuditLogListResponse, response_model_by_alias=True)
def list_audit_logs(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor_email: Optional[str] = Query(default=None),
    actor_email_camel: Optional[str] = Query(default=None, alias="actorEmail"),
    action: Optional[str] = Query(default=None),
    admin: CurrentUser = Depends(require_admin_user),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> AuditLogListResponse:
    records = log.list(
        limit=limit,
        offset=offset,
        actor_email=actor_email or actor_email_camel,
        action=action,
    )
    return AuditLogListResponse(
        logs=[AuditLogOut(**record.__dict__) for record in records],
        limit=limit,
        offset=offset,
    )
