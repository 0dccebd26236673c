"""Request dependencies: settings, services, and the session Auth Gate used to protect routes."""

import logging
from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import Forbidden, ServiceUnavailable, StoreError, Unauthenticated
from app.schemas.user import normalize_role
from app.services.auth import AuthService
from app.services.sessions import Identity, SessionManager
from app.services.users import UserRepository

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_user_repository(db: Annotated[Session, Depends(get_db)]) -> UserRepository:
    return UserRepository(db)


def get_auth_service(
    users: Annotated[UserRepository, Depends(get_user_repository)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthService:
    return AuthService(users, sessions, auto_login=settings.REGISTER_AUTO_LOGIN)


class AuthGate:
    """
    Dependency that admits a request only with a live session cookie.

    Configured per route with an optional required role set; the resolved
    Identity is returned to the handler and stored on request.state.identity.
    Missing/unknown/expired session -> 401, role outside the set -> 403,
    session store failure -> 503 (never treated as logged out).
    """

    def __init__(self, roles: Iterable[str] | None = None) -> None:
        self.roles = frozenset(normalize_role(r) for r in roles) if roles is not None else None

    async def __call__(
        self,
        request: Request,
        sessions: Annotated[SessionManager, Depends(get_session_manager)],
        settings: Annotated[Settings, Depends(get_app_settings)],
    ) -> Identity:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
        if not token:
            raise Unauthenticated()

        try:
            identity = await sessions.resolve(token)
        except StoreError as e:
            logger.error("Session lookup failed: %s", e.message)
            raise ServiceUnavailable() from e

        if identity is None:
            raise Unauthenticated("Session is invalid or expired")

        request.state.identity = identity

        if self.roles is not None and identity.role not in self.roles:
            logger.info(
                "Role not permitted",
                extra={
                    "user_id": str(identity.user_id),
                    "role": identity.role,
                    "path": request.url.path,
                },
            )
            raise Forbidden()
        return identity


require_session = AuthGate()


def require_roles(*roles: str) -> AuthGate:
    """Gate for routes restricted to the given roles."""
    return AuthGate(roles)
