"""Sign-in bridge called by the OAuth front end once the provider has vouched for an e-mail."""
from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from posterai.config import get_settings
from posterai.schemas.admin import SignInRequest, SignInResponse
from posterai.services import audit_log as audit
from posterai.services.auth import create_access_token
from posterai.services.errors import ErrorMessages, mask_email
from posterai.services.users import UserStore, get_user_store

logger = logging.getLogger("posterai")

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _check_bridge_secret(provided: Optional[str]) -> None:
    expected = get_settings().auth.bridge_secret
    if not expected:
        raise HTTPException(status_code=503, detail="Sign-in bridge is not configured")
    if not provided or not hmac.compare_digest(provided, expected):
        raise HTTPException(status_code=401, detail=ErrorMessages.UNAUTHORIZED)


@router.post("/signin", response_model=SignInResponse, response_model_by_alias=True)
def sign_in(
    payload: SignInRequest,
    request: Request,
    x_auth_bridge_secret: Optional[str] = Header(default=None),
    users: UserStore = Depends(get_user_store),
    log: audit.AuditLog = Depends(audit.get_audit_log),
) -> SignInResponse:
    _check_bridge_secret(x_auth_bridge_secret)
    info = audit.extract_request_info(request)
    email = (payload.email or "").strip().lower()

    if not email:
        log.log(
            audit.AuditEvent(
                actor_email="unknown",
                action=audit.SIGNIN_FAILED,
                details={"reason": "no_email"},
                success=False,
                **info,
            )
        )
        raise HTTPException(status_code=400, detail="Email address is required")

    if not users.check_user_access(email):
        log.log(
            audit.AuditEvent(
                actor_email=email,
                action=audit.SIGNIN_DENIED,
                details={"reason": "not_in_allowlist"},
                success=False,
                **info,
            )
        )
        logger.info("sign-in denied for %s", mask_email(email))
        raise HTTPException(status_code=403, detail=ErrorMessages.FORBIDDEN)

    is_admin = users.check_user_admin(email)
    log.log(
        audit.AuditEvent(
            actor_email=email,
            action=audit.SIGNIN_SUCCESS,
            details={"provider": "oauth", "isAdmin": is_admin},
            **info,
        )
    )
    token = create_access_token(email, name=payload.name, subject=payload.sub)
    return SignInResponse(
        access_token=token,
        expires_in=get_settings().auth.access_token_ttl_minutes * 60,
        is_admin=is_admin,
    )
