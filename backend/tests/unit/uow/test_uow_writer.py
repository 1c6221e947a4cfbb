"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest
from authcore.models import User
from authcore.services._shared.ports import UserAccount, UserStatus
from authcore.uow import StoreUnitOfWork
from authcore.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork
from tests.factories.user import UserFactory


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we create a user via the store inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserAccount(id="", email="uow@example.com", password_hash="h"))

        after = db.session.query(User).count()
        assert after == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(User).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserAccount(id="", email="boom@example.com", password_hash="h"))
            raise RuntimeError("boom")

        after = db.session.query(User).count()
        assert after == initial

    def test_writes_across_stores_share_one_transaction(self, app, db, session):
        """
        GIVEN a pending user
        WHEN activation succeeds but a later step in the same UoW fails
        THEN the activation is rolled back too.
        """
        u = UserFactory(status="PENDING_VERIFICATION")
        session.commit()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            assert uow.users.activate(u.id)
            uow.refresh_store.revoke_all_by_user(u.id)
            raise RuntimeError("boom")

        assert SQLAlchemyUnitOfWork().users.get(u.id).status is UserStatus.PENDING_VERIFICATION


def test_store_uow_exposes_the_given_stores(users, refresh_store, reset_store):
    with StoreUnitOfWork(users=users, refresh_store=refresh_store, reset_store=reset_store) as uow:
        assert uow.users is users
        assert uow.refresh_store is refresh_store
        assert uow.reset_store is reset_store
