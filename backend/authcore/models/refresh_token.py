"""Refresh token rows; only the SHA-256 digest of a token is stored."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from authcore.core.extensions import db

from .base import ReprMixin, TimestampMixin, UTCDateTime


class RefreshTokenRecord(ReprMixin, TimestampMixin, db.Model):
    """
    One refresh token of a rotation family.

    ``family_root_id`` is set when the root is issued at login and copied to
    every descendant, so revoking a family is a single indexed UPDATE.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    family_root_id: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_token_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")
    device_info: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_family_root_id", "family_root_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )
