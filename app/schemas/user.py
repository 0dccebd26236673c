"""Pydantic schemas for user records: roles, statuses, create/update payloads and responses."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# Closed role enumeration; route-level role sets are built from these values.
Role = Literal[
    "ROOT",
    "GENERAL_MANAGER",
    "MANAGER",
    "CUSTOMER",
    "WAITER",
    "COOK",
    "BARMAN",
    "CASH_REGISTER",
]

ROLE_VALUES: frozenset[str] = frozenset(
    {
        "ROOT",
        "GENERAL_MANAGER",
        "MANAGER",
        "CUSTOMER",
        "WAITER",
        "COOK",
        "BARMAN",
        "CASH_REGISTER",
    }
)

UserStatus = Literal["ACTIVE", "INACTIVE"]

STATUS_VALUES: frozenset[str] = frozenset({"ACTIVE", "INACTIVE"})


def normalize_role(value: str) -> str:
    """Return the canonical (upper-case) role or raise ValueError if it is not in the enumeration."""
    if not value or not value.strip():
        raise ValueError("role must be non-empty")
    normalized = value.strip().upper()
    if normalized not in ROLE_VALUES:
        raise ValueError(f"role must be one of {sorted(ROLE_VALUES)}, got {value!r}")
    return normalized


def normalize_email(value: str) -> str:
    """Emails are unique case-insensitively; store and compare them lower-cased."""
    return value.strip().lower()


class UserCreate(BaseModel):
    """Fields accepted when creating a user (registration or admin create)."""

    account_id: UUID
    branch_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=100)
    role: str = Field(..., description="One of the fixed roles, e.g. CUSTOMER.")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return normalize_role(v)


class UserUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    branch_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, min_length=8, max_length=100)
    role: str | None = None
    status: str | None = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str | None) -> str | None:
        return normalize_role(v) if v is not None else None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str | None) -> str | None:
        if v is None:
            return None
        normalized = v.strip().upper()
        if normalized not in STATUS_VALUES:
            raise ValueError(f"status must be one of {sorted(STATUS_VALUES)}, got {v!r}")
        return normalized


class UserResponse(BaseModel):
    """User record as returned by the API (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    branch_id: UUID | None = None
    name: str | None = None
    email: str
    role: str
    status: str
    created_at: datetime
    updated_at: datetime


class UsersListResponse(BaseModel):
    """Response for user listing endpoints."""

    users: list[UserResponse]
