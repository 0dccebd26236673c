"""Session record persisted in the key-value store."""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.user import Role


class SessionRecord(BaseModel):
    """
    One login event. Stored as JSON under the session token.

    A record whose expires_at is not in the future is treated as absent even
    if Redis has not evicted it yet.
    """

    session_id: str = Field(..., min_length=1)
    user_id: UUID
    role: Role
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now
