"""Registration, login, logout and session-revocation hooks built on the hasher, repository and session manager."""

import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol, TypeVar
from uuid import UUID

from argon2 import PasswordHasher
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import (
    AuthError,
    DuplicateEmail,
    HashingError,
    InvalidCredentials,
    InvalidInput,
    ServiceUnavailable,
    StoreError,
)
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    get_password_hasher,
    hash_password,
    needs_rehash,
    verify_password,
)
from app.schemas.user import normalize_email, normalize_role
from app.services.sessions import SessionManager
from app.services.users import Credential

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UserDirectory(Protocol):
    """The slice of the user repository that authentication depends on."""

    def find_credential_by_email(self, email: str) -> Credential | None: ...

    def email_exists(self, email: str) -> bool: ...

    def insert_user(self, fields: dict[str, Any]) -> UUID: ...

    def get_by_id(self, user_id: UUID) -> Any: ...

    def set_password_hash(self, user_id: UUID, password_hash: str) -> None: ...


@dataclass(frozen=True)
class Registration:
    user_id: UUID
    role: str
    # Set only when auto-login after registration is enabled.
    session_id: str | None = None


@dataclass(frozen=True)
class LoginResult:
    user_id: UUID
    role: str
    session_id: str


@lru_cache(maxsize=4)
def _dummy_hash(hasher: PasswordHasher) -> str:
    """Hash of a random throwaway password, verified against when the email is unknown."""
    return hash_password(secrets.token_urlsafe(16), hasher)


def prime_dummy_hash(hasher: PasswordHasher | None = None) -> None:
    """Compute the dummy hash ahead of the first login so unknown emails never pay for it."""
    _dummy_hash(hasher or get_password_hasher())


def _validate_password(password: str) -> None:
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise InvalidInput(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters."
        )


class AuthService:
    """
    Orchestrates credentials and sessions.

    Repository calls and Argon2 work run in the threadpool so hashing never
    blocks the event loop. Internal failures are logged here and surface to
    callers only as client-safe AuthErrors.
    """

    def __init__(
        self,
        users: UserDirectory,
        sessions: SessionManager,
        *,
        auto_login: bool = False,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.auto_login = auto_login
        self.hasher = hasher or get_password_hasher()

    async def register(
        self,
        email: str,
        password: str,
        role: str,
        account_id: UUID,
        *,
        name: str | None = None,
        branch_id: UUID | None = None,
        start_session: bool | None = None,
    ) -> Registration:
        """
        Create a user with a hashed password. Raises DuplicateEmail or InvalidInput.

        A session is started only when start_session (default: auto_login) is true.
        """
        email = normalize_email(email)
        try:
            role = normalize_role(role)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        _validate_password(password)

        if await self._db(self.users.email_exists, email):
            raise DuplicateEmail()

        password_hash = await self._hash(password)
        user_id = await self._db(
            self.users.insert_user,
            {
                "account_id": account_id,
                "branch_id": branch_id,
                "name": name,
                "email": email,
                "password_hash": password_hash,
                "role": role,
                "status": "ACTIVE",
            },
        )
        logger.info("User registered", extra={"user_id": str(user_id), "role": role})

        if start_session is None:
            start_session = self.auto_login
        session_id = None
        if start_session:
            session_id = await self._store(self.sessions.create(user_id, role))
        return Registration(user_id=user_id, role=role, session_id=session_id)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Verify credentials and issue a new session.

        Unknown email, wrong password and inactive account all raise the same
        InvalidCredentials, and every path performs one hash verification.
        """
        email = normalize_email(email)
        credential = await self._db(self.users.find_credential_by_email, email)
        if credential is None or not credential.password_hash:
            try:
                dummy = await run_in_threadpool(_dummy_hash, self.hasher)
            except HashingError as e:
                logger.error("Password hashing failed: %s", e.message)
                raise ServiceUnavailable() from e
            await self._verify(password, dummy, user_id=None)
            logger.info("Login failed", extra={"reason": "unknown_email"})
            raise InvalidCredentials()

        if not await self._verify(password, credential.password_hash, user_id=credential.user_id):
            logger.info(
                "Login failed",
                extra={"reason": "bad_password", "user_id": str(credential.user_id)},
            )
            raise InvalidCredentials()

        if credential.status != "ACTIVE":
            logger.info(
                "Login failed",
                extra={"reason": "inactive", "user_id": str(credential.user_id)},
            )
            raise InvalidCredentials()

        session_id = await self._store(self.sessions.create(credential.user_id, credential.role))
        await self._maybe_rehash(credential.user_id, password, credential.password_hash)
        logger.info("Login succeeded", extra={"user_id": str(credential.user_id)})
        return LoginResult(user_id=credential.user_id, role=credential.role, session_id=session_id)

    async def logout(self, session_id: str | None) -> None:
        """Revoke the session. Unknown, missing or malformed tokens succeed silently."""
        if not session_id:
            return
        await self._store(self.sessions.revoke(session_id))

    async def change_password(
        self, user_id: UUID, current_password: str, new_password: str
    ) -> int:
        """Replace the password and revoke every session of the user; return how many were revoked."""
        _validate_password(new_password)
        user = await self._db(self.users.get_by_id, user_id)
        if not user.password_hash or not await self._verify(
            current_password, user.password_hash, user_id=user_id
        ):
            raise InvalidCredentials("Current password is incorrect.")
        return await self.set_password(user_id, new_password)

    async def set_password(self, user_id: UUID, new_password: str) -> int:
        """
        Administrative password reset. Sessions are revoked before the new hash is
        committed, so a store outage leaves both the password and the sessions untouched.
        """
        _validate_password(new_password)
        new_hash = await self._hash(new_password)
        revoked = await self.revoke_user_sessions(user_id, reason="password_changed")
        await self._db(self.users.set_password_hash, user_id, new_hash)
        await self.sweep_user_sessions(user_id, reason="password_changed")
        return revoked

    async def revoke_user_sessions(self, user_id: UUID, *, reason: str) -> int:
        """Hook for events that must end all of a user's sessions (password, role, deactivation)."""
        revoked = await self._store(self.sessions.revoke_all_for_user(user_id))
        logger.info(
            "User sessions revoked",
            extra={"user_id": str(user_id), "reason": reason, "revoked": revoked},
        )
        return revoked

    async def sweep_user_sessions(self, user_id: UUID, *, reason: str) -> None:
        """
        Second revocation after the change is committed, for sessions created in
        between. The change already holds, so a store failure here is only logged.
        """
        try:
            await self.revoke_user_sessions(user_id, reason=reason)
        except ServiceUnavailable:
            logger.warning(
                "Post-commit session sweep skipped",
                extra={"user_id": str(user_id), "reason": reason},
            )

    async def on_role_changed(self, user_id: UUID) -> int:
        return await self.revoke_user_sessions(user_id, reason="role_changed")

    async def on_user_deactivated(self, user_id: UUID) -> int:
        return await self.revoke_user_sessions(user_id, reason="deactivated")

    async def _hash(self, password: str) -> str:
        try:
            return await run_in_threadpool(hash_password, password, self.hasher)
        except HashingError as e:
            logger.error("Password hashing failed: %s", e.message)
            raise ServiceUnavailable() from e

    async def _verify(self, password: str, password_hash: str, *, user_id: UUID | None) -> bool:
        try:
            return await run_in_threadpool(verify_password, password, password_hash, self.hasher)
        except HashingError as e:
            logger.error(
                "Stored password hash is malformed",
                extra={"user_id": str(user_id) if user_id else None, "error": e.message},
            )
            return False

    async def _maybe_rehash(self, user_id: UUID, password: str, password_hash: str) -> None:
        """Upgrade hashes made with older Argon2 parameters; failure only costs the upgrade."""
        if not needs_rehash(password_hash, self.hasher):
            return
        try:
            new_hash = await self._hash(password)
            await self._db(self.users.set_password_hash, user_id, new_hash)
        except AuthError as e:
            logger.warning(
                "Password rehash skipped",
                extra={"user_id": str(user_id), "error": e.message},
            )

    async def _db(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await run_in_threadpool(fn, *args)
        except SQLAlchemyError as e:
            logger.exception("User repository call failed: %s", e)
            raise ServiceUnavailable() from e

    async def _store(self, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except StoreError as e:
            logger.error("Session store unavailable: %s", e.message)
            raise ServiceUnavailable() from e
