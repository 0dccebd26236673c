"""Session login/logout/registration endpoints and the current-identity route."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.cookies import clear_session_cookie, set_session_cookie
from app.api.deps import get_app_settings, get_auth_service, require_session
from app.core.config import Settings
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
from app.services.auth import AuthService
from app.services.sessions import Identity

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> RegisterResponse:
    """
    Create a user account. Returns 409 if the email is taken.
    Does not log the user in unless REGISTER_AUTO_LOGIN is enabled.
    """
    registration = await auth.register(
        body.email,
        body.password,
        body.role,
        body.account_id,
        name=body.name,
        branch_id=body.branch_id,
    )
    if registration.session_id:
        set_session_cookie(response, registration.session_id, settings)
    return RegisterResponse(user_id=registration.user_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> LoginResponse:
    """
    Authenticate with email and password. On success the session token is set
    as an HttpOnly cookie; the body carries only the user id and role.
    """
    result = await auth.login(body.email, body.password)
    set_session_cookie(response, result.session_id, settings)
    return LoginResponse(user_id=result.user_id, role=result.role)


@router.api_route("/logout", methods=["DELETE", "POST"], response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> MessageResponse:
    """Revoke the current session (if any) and clear the cookie. Succeeds for unknown sessions."""
    await auth.logout(request.cookies.get(settings.SESSION_COOKIE_NAME))
    clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=CurrentUser)
async def me(identity: Annotated[Identity, Depends(require_session)]) -> CurrentUser:
    """Return the identity attached to the current session."""
    return CurrentUser(user_id=identity.user_id, role=identity.role)


@router.put("/password", response_model=SessionsRevokedResponse)
async def change_password(
    body: PasswordChangeRequest,
    response: Response,
    identity: Annotated[Identity, Depends(require_session)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SessionsRevokedResponse:
    """Change own password. Every session of the user, including this one, is revoked."""
    revoked = await auth.change_password(identity.user_id, body.current_password, body.new_password)
    clear_session_cookie(response, settings)
    return SessionsRevokedResponse(user_id=identity.user_id, revoked=revoked)
