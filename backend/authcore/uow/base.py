"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authcore.services._shared.ports import RefreshTokenStore, ResetTokenStore, UserAccountStore


class UnitOfWork(ABC):
    """
    Coordinates a transactional boundary for a use-case.

    Responsibilities:
    - Provide access to stores bound to the same transaction.
    - Commit on success, rollback on error.
    """

    users: UserAccountStore
    refresh_store: RefreshTokenStore
    reset_store: ResetTokenStore

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...


class StoreUnitOfWork(UnitOfWork):
    """
    Groups stores that apply every write immediately.

    Used with the in-memory backend: each store operation is atomic on its
    own, so there is nothing to commit or roll back.
    """

    def __init__(
        self,
        *,
        users: UserAccountStore,
        refresh_store: RefreshTokenStore,
        reset_store: ResetTokenStore,
    ) -> None:
        self.users = users
        self.refresh_store = refresh_store
        self.reset_store = reset_store

    def __enter__(self) -> StoreUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def commit(self) -> None:
        return None

    def rollback(self) -> None:
        return None
