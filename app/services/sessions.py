"""Session lifecycle: issue, resolve, renew, and revoke sessions held in the shared store."""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from app.schemas.session import SessionRecord
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

# 32 random bytes -> 43 URL-safe base64 characters (256 bits of entropy).
SESSION_TOKEN_BYTES = 32
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")


@dataclass(frozen=True)
class Identity:
    """Request-scoped authenticated identity rebuilt from a session record."""

    user_id: UUID
    role: str
    session_id: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_token() -> str:
    """Fresh token from the OS CSPRNG; uniqueness comes from entropy, not collision checks."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def is_well_formed_token(value: str) -> bool:
    """Cheap shape check so garbage cookies never reach the store."""
    return bool(_TOKEN_RE.match(value))


class SessionManager:
    """
    Owns ABSENT -> ACTIVE -> (EXPIRED | REVOKED) for every session.

    Holds no session state in process memory: each call consults the store, so
    any instance can serve any session. Errors from the store propagate as
    StoreError so callers can tell an outage from a logged-out client.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        ttl_seconds: int = 86400,
        sliding_expiration: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.sliding_expiration = sliding_expiration
        self._clock = clock
        self._background: set[asyncio.Task[None]] = set()

    async def create(self, user_id: UUID, role: str) -> str:
        """Persist a new session for the user and return its token."""
        now = self._clock()
        record = SessionRecord(
            session_id=new_session_token(),
            user_id=user_id,
            role=role,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        await self.store.put(record, self.ttl_seconds)
        logger.info(
            "Session created",
            extra={"user_id": str(user_id), "role": role, "session_prefix": record.session_id[:8]},
        )
        return record.session_id

    async def resolve(self, session_id: str) -> Identity | None:
        """
        Return the identity for a live session, or None if absent, expired or revoked.

        Raises StoreError when the store cannot answer.
        """
        if not session_id or not is_well_formed_token(session_id):
            return None
        record = await self.store.get(session_id)
        if record is None:
            return None
        now = self._clock()
        if record.is_expired(now):
            # Lazy expiry: answer "absent" now, clean up without making the caller wait.
            self._spawn(self._discard_expired(session_id), "expired session cleanup")
            return None
        if self.sliding_expiration:
            self._spawn(self._renew(record, now), "session renewal")
        return Identity(user_id=record.user_id, role=record.role, session_id=record.session_id)

    async def revoke(self, session_id: str) -> None:
        """Delete the session; revoking an unknown or already revoked session is a no-op."""
        if not session_id or not is_well_formed_token(session_id):
            return
        await self.store.delete(session_id)
        logger.info("Session revoked", extra={"session_prefix": session_id[:8]})

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        """Revoke every session of the user (password or role change, deactivation)."""
        revoked = await self.store.delete_user_sessions(user_id)
        logger.info(
            "All sessions revoked for user",
            extra={"user_id": str(user_id), "revoked": revoked},
        )
        return revoked

    async def _renew(self, record: SessionRecord, now: datetime) -> None:
        renewed = record.model_copy(
            update={"expires_at": now + timedelta(seconds=self.ttl_seconds)}
        )
        existed = await self.store.touch(record.session_id, self.ttl_seconds, renewed)
        if not existed:
            logger.debug(
                "Session vanished before renewal",
                extra={"session_prefix": record.session_id[:8]},
            )

    async def _discard_expired(self, session_id: str) -> None:
        await self.store.delete(session_id)

    def _spawn(self, coro: Coroutine[Any, Any, None], what: str) -> None:
        """Run best-effort store work in the background; failures are logged, never raised."""
        task = asyncio.create_task(coro)
        self._background.add(task)

        def _done(t: asyncio.Task[None]) -> None:
            self._background.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.warning("Background %s failed: %s", what, exc)

        task.add_done_callback(_done)

    async def aclose(self) -> None:
        """Wait for outstanding background renewals and cleanups (used at shutdown and in tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
