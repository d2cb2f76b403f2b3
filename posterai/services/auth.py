"""Bearer token handling for users admitted through the OAuth sign-in bridge."""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request

from posterai.config import get_settings
from posterai.services.errors import ErrorMessages, mask_email
from posterai.services.users import UserStore, get_user_store

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    email: str
    name: Optional[str]
    subject: Optional[str]
    is_admin: bool
    daily_limit: int


def create_access_token(email: str, *, name: Optional[str] = None, subject: Optional[str] = None) -> str:
    auth = get_settings().auth
    now = _dt.datetime.now(_dt.timezone.utc)
    payload = {
        "sub": subject or email,
        "email": email,
        "name": name,
        "iat": now,
        "exp": now + _dt.timedelta(minutes=auth.access_token_ttl_minutes),
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    auth = get_settings().auth
    try:
        return jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Access token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid access token")


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def optional_current_user(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> Optional[CurrentUser]:
    """Resolve the caller when a valid token is present, otherwise ``None``."""

    token = _bearer_token(request)
    if not token:
        return None
    try:
        claims = decode_access_token(token)
    except HTTPException:
        return None
    user = users.get_user_by_email(claims.get("email") or "")
    if user is None or not user.is_active:
        return None
    return CurrentUser(user.email, user.name, claims.get("sub"), user.is_admin, user.daily_limit)


def require_current_user(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> CurrentUser:
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail=ErrorMessages.UNAUTHORIZED)
    claims = decode_access_token(token)
    email = claims.get("email")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user = users.get_user_by_email(email)
    if user is None or not user.is_active:
        logger.info("rejected token for %s: not on the allow-list", mask_email(email))
        raise HTTPException(status_code=401, detail=ErrorMessages.UNAUTHORIZED)
    return CurrentUser(
        email=user.email,
        name=user.name or claims.get("name"),
        subject=claims.get("sub"),
        is_admin=user.is_admin,
        daily_limit=user.daily_limit,
    )


def require_admin_user(user: CurrentUser = Depends(require_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail=ErrorMessages.FORBIDDEN)
    return user
