"""User account model holding credentials and lockout state."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from authcore.core.extensions import db

from .base import ReprMixin, TimestampMixin, UTCDateTime


def _new_user_id() -> str:
    return str(uuid4())


class User(ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    id : str
        UUID string primary key.
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Credential hash produced by the password hasher.
    status : str
        ``ACTIVE``, ``PENDING_VERIFICATION``, ``SUSPENDED`` or ``DEACTIVATED``.
    failed_login_attempts, lockout_until, lockout_count : lockout state
        Maintained by the lockout policy on every login attempt.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ACTIVE")

    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lockout_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    lockout_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failed_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_status", "status"),
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v
