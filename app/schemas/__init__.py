"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordChangeRequest,
    RegisterRequest,
    RegisterResponse,
    SessionsRevokedResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.session import SessionRecord
from app.schemas.user import (
    ROLE_VALUES,
    STATUS_VALUES,
    Role,
    UserCreate,
    UserResponse,
    UsersListResponse,
    UserStatus,
    UserUpdate,
)

__all__ = [
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PasswordChangeRequest",
    "ROLE_VALUES",
    "RegisterRequest",
    "RegisterResponse",
    "Role",
    "STATUS_VALUES",
    "SessionRecord",
    "SessionsRevokedResponse",
    "UserCreate",
    "UserResponse",
    "UserStatus",
    "UserUpdate",
    "UsersListResponse",
]
