"""User CRUD endpoints. Each route declares the roles allowed to call it."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from app.api.deps import get_auth_service, get_user_repository, require_roles
from app.core.errors import DuplicateEmail, Forbidden, InvalidInput
from app.schemas.auth import MessageResponse, SessionsRevokedResponse
from app.schemas.user import (
    UserCreate,
    UserResponse,
    UsersListResponse,
    UserUpdate,
    normalize_email,
    normalize_role,
)
from app.services.auth import AuthService
from app.services.sessions import Identity
from app.services.users import UserRepository

logger = logging.getLogger(__name__)
router = APIRouter()

READ_ROLES = ("ROOT", "GENERAL_MANAGER", "MANAGER")
WRITE_ROLES = ("ROOT", "GENERAL_MANAGER")
ROOT_ONLY = ("ROOT",)

can_read = require_roles(*READ_ROLES)
can_write = require_roles(*WRITE_ROLES)
root_only = require_roles(*ROOT_ONLY)


def _list(users) -> UsersListResponse:
    return UsersListResponse(users=[UserResponse.model_validate(u) for u in users])


def _require_root_to_grant_root(identity: Identity, role: str | None) -> None:
    if role == "ROOT" and identity.role != "ROOT":
        raise Forbidden("Only root users can grant the ROOT role")


@router.get("", response_model=UsersListResponse)
def list_users(
    _identity: Annotated[Identity, Depends(can_read)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UsersListResponse:
    """List all users, newest first (including soft-deleted)."""
    return _list(users.list_users())


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    identity: Annotated[Identity, Depends(can_write)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Create a user on behalf of someone else; never starts a session for them."""
    _require_root_to_grant_root(identity, body.role)
    registration = await auth.register(
        body.email,
        body.password,
        body.role,
        body.account_id,
        name=body.name,
        branch_id=body.branch_id,
        start_session=False,
    )
    logger.info(
        "User created by admin",
        extra={"user_id": str(registration.user_id), "actor_id": str(identity.user_id)},
    )
    user = await run_in_threadpool(users.get_by_id, registration.user_id)
    return UserResponse.model_validate(user)


@router.get("/account/{account_id}", response_model=UsersListResponse)
def list_users_by_account(
    account_id: UUID,
    _identity: Annotated[Identity, Depends(can_read)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UsersListResponse:
    return _list(users.list_by_account(account_id))


@router.get("/branch/{branch_id}", response_model=UsersListResponse)
def list_users_by_branch(
    branch_id: UUID,
    _identity: Annotated[Identity, Depends(can_read)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UsersListResponse:
    return _list(users.list_by_branch(branch_id))


@router.get("/role/{role}", response_model=UsersListResponse)
def list_users_by_role(
    role: str,
    _identity: Annotated[Identity, Depends(can_read)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UsersListResponse:
    try:
        role = normalize_role(role)
    except ValueError as e:
        raise InvalidInput(str(e)) from e
    return _list(users.list_by_role(role))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    _identity: Annotated[Identity, Depends(can_read)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    return UserResponse.model_validate(users.get_by_id(user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    identity: Annotated[Identity, Depends(can_write)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """
    Partially update a user. A new password, a role change, or status INACTIVE
    ends every session the user currently holds. Sessions are revoked before the
    change is committed, so a session store outage (503) leaves the user unchanged.
    """
    before = await run_in_threadpool(users.get_by_id, user_id)

    changes = body.model_dump(exclude_unset=True, exclude={"password"})
    if changes.get("email") is not None:
        changes["email"] = normalize_email(changes["email"])
        if changes["email"] != before.email and await run_in_threadpool(
            users.email_exists, changes["email"]
        ):
            raise DuplicateEmail()
    # Only branch_id and name may be cleared explicitly.
    changes = {k: v for k, v in changes.items() if v is not None or k in {"branch_id", "name"}}

    role_changed = changes.get("role") is not None and changes["role"] != before.role
    deactivating = changes.get("status") == "INACTIVE" and before.status != "INACTIVE"
    if deactivating and before.role == "ROOT":
        raise Forbidden("Cannot deactivate root users")
    if role_changed:
        _require_root_to_grant_root(identity, changes["role"])

    if body.password is not None:
        await auth.set_password(user_id, body.password)
    elif role_changed:
        await auth.on_role_changed(user_id)
    elif deactivating:
        await auth.on_user_deactivated(user_id)

    user = await run_in_threadpool(users.update_user, user_id, changes)
    if role_changed or deactivating:
        await auth.sweep_user_sessions(user_id, reason="user_updated")
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    _identity: Annotated[Identity, Depends(root_only)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> MessageResponse:
    """Permanently delete a user. Sessions are revoked first; a store outage keeps the user."""
    await run_in_threadpool(users.get_by_id, user_id)
    await auth.revoke_user_sessions(user_id, reason="deleted")
    await run_in_threadpool(users.delete_user, user_id)
    await auth.sweep_user_sessions(user_id, reason="deleted")
    return MessageResponse(message="User deleted")


@router.post("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: UUID,
    _identity: Annotated[Identity, Depends(can_write)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Soft delete a user. ROOT users cannot be deactivated."""
    user = await run_in_threadpool(users.get_by_id, user_id)
    if user.role == "ROOT":
        raise Forbidden("Cannot deactivate root users")
    await auth.on_user_deactivated(user_id)
    user = await run_in_threadpool(users.soft_delete, user_id)
    await auth.sweep_user_sessions(user_id, reason="deactivated")
    return UserResponse.model_validate(user)


@router.post("/{user_id}/activate", response_model=UserResponse)
async def activate_user(
    user_id: UUID,
    _identity: Annotated[Identity, Depends(can_write)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Restore a soft-deleted user."""
    user = await run_in_threadpool(users.restore, user_id)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/sessions/revoke", response_model=SessionsRevokedResponse)
async def revoke_user_sessions(
    user_id: UUID,
    identity: Annotated[Identity, Depends(root_only)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionsRevokedResponse:
    """Administrative revocation of every session the user holds."""
    revoked = await auth.revoke_user_sessions(user_id, reason=f"admin:{identity.user_id}")
    return SessionsRevokedResponse(user_id=user_id, revoked=revoked)
