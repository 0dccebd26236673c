"""ORM model for user accounts (credentials, role, soft-delete state)."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import Base


class User(Base):
    """
    User account for session authentication and role-based access control.

    email is stored lower-cased; role is one of the fixed roles in app.schemas.user;
    status is 'ACTIVE' or 'INACTIVE'. deleted_at marks a soft-deleted user.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('ROOT', 'GENERAL_MANAGER', 'MANAGER', 'CUSTOMER', "
            "'WAITER', 'COOK', 'BARMAN', 'CASH_REGISTER')",
            name="ck_users_role",
        ),
        CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="ck_users_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    branch_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="ACTIVE", server_default="ACTIVE")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)
