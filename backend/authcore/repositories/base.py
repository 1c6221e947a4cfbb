"""Generic repository base for SQLAlchemy 2.x stores.

The repositories in this package implement the service-layer store ports.
Unlike plain CRUD repositories, each port method is one complete transaction:
status transitions are single conditional UPDATE statements whose row count
tells the caller whether the transition happened, and the method commits (or
rolls back) before returning. A repository created with ``autocommit=False``
only flushes, leaving the outcome to an enclosing unit of work.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Update
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

from authcore.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence base for a single aggregate.

    Subclasses MUST define ``model``: the SQLAlchemy mapped class.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None, *, autocommit: bool = True) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``authcore.core.extensions``.

        :param session: Session to use instead of the scoped one.
        :type session: :class:`sqlalchemy.orm.Session` | None
        :param autocommit: Commit at the end of each store method.
        """
        self._session: Session | None = session
        self._autocommit = autocommit

    # ------------------------------ Session access ---------------------------

    @property
    def session(self) -> Session:
        """Return the active SQLAlchemy session.

        :rtype: :class:`sqlalchemy.orm.Session`
        """
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on success, roll back on any exception; only flush without autocommit."""
        session = self.session
        if not self._autocommit:
            yield session
            session.flush()
            return
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    def _rowcount(self, stmt: Update) -> int:
        """Execute a bulk UPDATE without ORM synchronisation and return matched rows."""
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        return int(cast(CursorResult[Any], result).rowcount or 0)

    def _returning(self, stmt: Update) -> Any:
        """Execute an ``UPDATE ... RETURNING`` of one column; ``None`` if no row matched."""
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.scalar_one_or_none()

    # ------------------------------ Basic CRUD -------------------------------

    def get(self, entity_id: Any) -> E | None:
        """Fetch an entity by primary key.

        :returns: The entity or ``None`` when absent.
        """
        return self.session.get(self.model, entity_id)

    def add(self, instance: E) -> E:
        """Stage ``instance`` for insertion; the caller's transaction commits."""
        self.session.add(instance)
        return instance
