from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field, StrictBool, StrictInt, model_validator

from posterai.schemas import _CamelModel


class SignInRequest(_CamelModel):
    email: Optional[str] = None
    name: Optional[str] = None
    sub: Optional[str] = None


class SignInResponse(_CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    is_admin: bool


class UsageInfo(_CamelModel):
    used: int
    remaining: int
    limit: int
    reset_at: str
    unlimited: bool


class MeResponse(_CamelModel):
    email: str
    name: Optional[str] = None
    is_admin: bool
    daily_limit: int
    usage: UsageInfo


class UserOut(_CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    is_active: bool
    is_admin: bool
    daily_limit: int
    created_at: str
    updated_at: str


class UserListResponse(_CamelModel):
    users: List[UserOut]


class UserResponse(_CamelModel):
    success: bool = True
    user: UserOut


class AddUserRequest(_CamelModel):
    email: str = Field(min_length=3, max_length=320)
    name: Optional[str] = Field(default=None, max_length=200)


class UpdateUserRequest(_CamelModel):
    id: int
    daily_limit: Optional[StrictInt] = None
    is_active: Optional[StrictBool] = None

    @model_validator(mode="after")
    def _one_change(self) -> "UpdateUserRequest":
        if self.daily_limit is None and self.is_active is None:
            raise ValueError("Either dailyLimit or isActive must be provided")
        return self


class ToggleAdminRequest(_CamelModel):
    id: int
    target_email: str = ""
    is_admin: StrictBool


class AdminCheckResponse(_CamelModel):
    is_admin: bool


class AuditLogOut(_CamelModel):
    id: int
    timestamp: str
    actor_email: str
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True


class AuditLogListResponse(_CamelModel):
    logs: List[AuditLogOut]
    limit: int
    offset: int
