"""Request/response schemas for auth endpoints."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserCreate


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., max_length=255, description="Email address")
    password: str = Field(..., min_length=1, max_length=100, description="Password")


class RegisterRequest(UserCreate):
    """Self-registration payload; same fields as an admin-created user."""


class RegisterResponse(BaseModel):
    """Id of the newly registered user."""

    user_id: UUID


class LoginResponse(BaseModel):
    """Returned after successful login; the session token travels only in the cookie."""

    user_id: UUID
    role: str


class CurrentUser(BaseModel):
    """Authenticated identity (user id and role) resolved from the session cookie."""

    user_id: UUID
    role: str


class PasswordChangeRequest(BaseModel):
    """New password for the authenticated user."""

    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100)


class MessageResponse(BaseModel):
    message: str


class SessionsRevokedResponse(BaseModel):
    """Result of revoking every session of a user."""

    user_id: UUID
    revoked: int
