"""Unit of Work abstractions and concrete implementations.

Use cases that must change several stores atomically run inside a unit of
work. The SQLAlchemy variant lives in :mod:`authcore.uow.sqlalchemy_uow` and
is imported only when the SQL backend is configured, since it pulls in the
repositories.
"""

from .base import StoreUnitOfWork, UnitOfWork

__all__ = [
    "StoreUnitOfWork",
    "UnitOfWork",
]
