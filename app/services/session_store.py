"""Redis-backed session store: atomic set-with-expiry, lookup, touch, delete, per-user index."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Protocol, TypeVar
from uuid import UUID

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.errors import StoreError
from app.schemas.session import SessionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionStore(Protocol):
    """Contract the session manager relies on. Every method raises StoreError on backend failure."""

    async def put(self, record: SessionRecord, ttl_seconds: int) -> None: ...

    async def get(self, session_id: str) -> SessionRecord | None: ...

    async def delete(self, session_id: str) -> None: ...

    async def touch(
        self, session_id: str, ttl_seconds: int, record: SessionRecord | None = None
    ) -> bool: ...

    async def delete_user_sessions(self, user_id: UUID) -> int: ...

    async def ping(self) -> bool: ...


class RedisSessionStore:
    """
    Session records as JSON strings under "<prefix><token>".

    Each user also has a set "<prefix>user:<user_id>" listing their tokens so
    all of a user's sessions can be revoked without a keyspace scan. Tokens are
    URL-safe base64 and never contain ':', so the two key families cannot collide.
    """

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "session:",
        operation_timeout: float = 3.0,
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.operation_timeout = operation_timeout

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def _user_key(self, user_id: UUID | str) -> str:
        return f"{self.key_prefix}user:{user_id}"

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a Redis call under the configured timeout; map every failure to StoreError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.operation_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"Session store {operation} timed out after {self.operation_timeout}s"
            ) from e
        except (RedisError, OSError) as e:
            raise StoreError(f"Session store {operation} failed: {e}") from e

    async def put(self, record: SessionRecord, ttl_seconds: int) -> None:
        """Write the record with its TTL and index it under the user, in one MULTI/EXEC."""
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        user_key = self._user_key(record.user_id)

        async def _put() -> None:
            pipe = self.client.pipeline(transaction=True)
            pipe.set(self._key(record.session_id), record.model_dump_json(), ex=ttl_seconds)
            pipe.sadd(user_key, record.session_id)
            pipe.expire(user_key, ttl_seconds)
            await pipe.execute()

        await self._run("put", _put())

    async def get(self, session_id: str) -> SessionRecord | None:
        """Return the stored record, or None when the key does not exist."""
        raw = await self._run("get", self.client.get(self._key(session_id)))
        if raw is None:
            return None
        try:
            return SessionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning(
                "Discarding unreadable session record",
                extra={"session_prefix": session_id[:8]},
            )
            return None

    async def delete(self, session_id: str) -> None:
        """Delete the record; a missing key is not an error."""
        await self._run("delete", self.client.delete(self._key(session_id)))

    async def touch(
        self, session_id: str, ttl_seconds: int, record: SessionRecord | None = None
    ) -> bool:
        """
        Refresh the TTL only if the key still exists; return whether it existed.

        With a record, the value is rewritten as well (SET ... XX), so a session
        revoked concurrently is never recreated.
        """
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        if record is None:
            return bool(
                await self._run("touch", self.client.expire(self._key(session_id), ttl_seconds))
            )
        user_key = self._user_key(record.user_id)

        async def _touch() -> list:
            pipe = self.client.pipeline(transaction=True)
            pipe.set(self._key(session_id), record.model_dump_json(), ex=ttl_seconds, xx=True)
            pipe.expire(user_key, ttl_seconds)
            return await pipe.execute()

        results = await self._run("touch", _touch())
        return bool(results[0])

    async def delete_user_sessions(self, user_id: UUID) -> int:
        """Delete every indexed session of the user; return how many records were removed."""
        user_key = self._user_key(user_id)
        members = await self._run("delete_user_sessions", self.client.smembers(user_key))
        if not members:
            return 0

        async def _delete() -> list:
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(*(self._key(sid) for sid in members))
            # Remove only the members we read; a login racing with this call keeps its entry.
            pipe.srem(user_key, *members)
            return await pipe.execute()

        results = await self._run("delete_user_sessions", _delete())
        return int(results[0] or 0)

    async def ping(self) -> bool:
        """True if Redis answers within the timeout."""
        try:
            return bool(await self._run("ping", self.client.ping()))
        except StoreError:
            return False

    async def close(self) -> None:
        await self.client.aclose()


def create_redis_client(redis_url: str, *, socket_timeout: float) -> Redis:
    """Build an asyncio Redis client with explicit socket timeouts (connects lazily)."""
    return Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
