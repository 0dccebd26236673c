"""User repository: SQLAlchemy queries for user records and the credentials auth needs."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateEmail, UserNotFound
from app.models import User

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION = "23505"


def _is_unique_violation(error: IntegrityError) -> bool:
    return getattr(error.orig, "pgcode", None) == UNIQUE_VIOLATION


# Columns an update may touch; everything else is immutable through the API.
UPDATABLE_FIELDS = frozenset({"branch_id", "name", "email", "role", "status"})


@dataclass(frozen=True)
class Credential:
    """What login needs from a user row; never carries a plaintext password."""

    user_id: UUID
    email: str
    password_hash: str | None
    role: str
    status: str


class UserRepository:
    """Owns the users table. One instance per request-scoped DB session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _live(self):
        return self.db.query(User).filter(User.deleted_at.is_(None))

    def find_credential_by_email(self, email: str) -> Credential | None:
        """Credential for a non-deleted user with this (already normalized) email."""
        user = self._live().filter(User.email == email).first()
        if user is None:
            return None
        return Credential(
            user_id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            role=user.role,
            status=user.status,
        )

    def email_exists(self, email: str) -> bool:
        # Soft-deleted rows still hold the unique email, so they count.
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def insert_user(self, fields: dict[str, Any]) -> UUID:
        """Insert a user row and return its id. Raises DuplicateEmail on a unique violation."""
        user = User(**fields)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_unique_violation(e):
                raise
            logger.info("Insert rejected by unique constraint", extra={"email": fields.get("email")})
            raise DuplicateEmail() from e
        self.db.refresh(user)
        logger.info("Created user", extra={"user_id": str(user.id), "role": user.role})
        return user.id

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at.desc()).all()

    def get_by_id(self, user_id: UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFound()
        return user

    def update_user(self, user_id: UUID, changes: dict[str, Any]) -> User:
        """Apply a partial update. Raises UserNotFound or DuplicateEmail."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        user = self.get_by_id(user_id)
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = datetime.now(timezone.utc)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_unique_violation(e):
                raise
            raise DuplicateEmail() from e
        self.db.refresh(user)
        logger.info("Updated user", extra={"user_id": str(user_id), "fields": sorted(changes)})
        return user

    def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
        user = self.get_by_id(user_id)
        user.password_hash = password_hash
        user.updated_at = datetime.now(timezone.utc)
        self.db.commit()

    def delete_user(self, user_id: UUID) -> None:
        user = self.get_by_id(user_id)
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted user", extra={"user_id": str(user_id)})

    def soft_delete(self, user_id: UUID) -> User:
        """Mark the user deleted and inactive; the row and its email stay reserved."""
        user = self.get_by_id(user_id)
        now = datetime.now(timezone.utc)
        user.deleted_at = now
        user.status = "INACTIVE"
        user.updated_at = now
        self.db.commit()
        self.db.refresh(user)
        logger.info("Soft deleted user", extra={"user_id": str(user_id)})
        return user

    def restore(self, user_id: UUID) -> User:
        user = self.get_by_id(user_id)
        user.deleted_at = None
        user.status = "ACTIVE"
        user.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Restored user", extra={"user_id": str(user_id)})
        return user

    def list_by_account(self, account_id: UUID) -> list[User]:
        return (
            self._live()
            .filter(User.account_id == account_id)
            .order_by(User.created_at.desc())
            .all()
        )

    def list_by_branch(self, branch_id: UUID) -> list[User]:
        return (
            self._live()
            .filter(User.branch_id == branch_id)
            .order_by(User.created_at.desc())
            .all()
        )

    def list_by_role(self, role: str) -> list[User]:
        return (
            self._live()
            .filter(User.role == role)
            .order_by(User.created_at.desc())
            .all()
        )
