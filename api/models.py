"""
API request and response models for AdminDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
audit/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audit.models import AuditEvent
from auth.models import User

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    admin = "admin"
    user = "user"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Empty fields fail validation and surface as a 400 with field-level
    detail (see the RequestValidationError handler in api/main.py).
    Only the username is trimmed; the password is checked exactly as sent,
    the same as the HTML login form.
    """

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    """Public identity of a user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: RoleEnum


class UserResponse(UserProfile):
    """One row of GET /api/v1/users."""

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    user: UserProfile


class LogoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserProfile


class UsersResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: list[UserResponse]


class AuditEventResponse(BaseModel):
    """One row of GET /api/v1/logs. username is None for anonymous or deleted users."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: Optional[int]
    username: Optional[str]
    action: str
    description: Optional[str]
    ip_address: Optional[str]
    created_at: str

    @classmethod
    def from_event(cls, event: AuditEvent) -> "AuditEventResponse":
        return cls(
            id=event.id,
            user_id=event.user_id,
            username=event.username,
            action=event.action,
            description=event.description,
            ip_address=event.ip_address,
            created_at=event.created_at,
        )


class LogsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    logs: list[AuditEventResponse]
    limit: int
    offset: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
    audit_failures: int = 0
