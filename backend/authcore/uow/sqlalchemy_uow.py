"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from typing import cast

from sqlalchemy.orm import Session

from authcore.core.extensions import db
from authcore.repositories.password_reset_token import PasswordResetTokenRepository
from authcore.repositories.refresh_token import RefreshTokenRepository
from authcore.repositories.user import UserRepository
from authcore.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The repositories share one session and only flush, so every write made
    inside the ``with`` block commits or rolls back together.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else cast(Session, db.session)
        self.users = UserRepository(session=self.session, autocommit=False)
        self.refresh_store = RefreshTokenRepository(session=self.session, autocommit=False)
        self.reset_store = PasswordResetTokenRepository(session=self.session, autocommit=False)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first write.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
