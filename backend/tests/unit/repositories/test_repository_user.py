"""Unit tests for UserRepository."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from authcore.repositories.user import UserRepository
from authcore.services._shared.errors import NotFoundError
from authcore.services._shared.policies.lockout import LockoutPolicy
from authcore.services._shared.ports import DuplicateEmailError, UserAccount, UserStatus
from tests.factories.user import UserFactory
from tests.helpers.utils import START


class TestUserRepository:
    """Ensure ``UserRepository`` maps rows to accounts and persists lockout state."""

    @pytest.fixture()
    def repo(self):
        return UserRepository()

    def test_get_by_email_is_case_insensitive(self, repo, session):
        u = UserFactory(email="alice@example.com")
        session.commit()

        fetched = repo.get_by_email("  ALICE@example.com")
        assert fetched is not None
        assert fetched.id == u.id
        assert fetched.status is UserStatus.ACTIVE
        assert repo.get_by_email("nobody@example.com") is None

    def test_add_assigns_id_and_normalizes_email(self, repo):
        created = repo.add(UserAccount(id="", email="New@Example.com", password_hash="h"))
        assert created.id
        assert created.email == "new@example.com"
        assert repo.get(created.id) == created

    def test_save_persists_lockout_state(self, repo, session):
        u = UserFactory()
        session.commit()
        until = datetime(2024, 5, 1, 12, 15, tzinfo=UTC)

        account = repo.get(u.id)
        repo.save(replace(account, failed_login_attempts=5, lockout_until=until, lockout_count=1))

        reloaded = repo.get(u.id)
        assert reloaded.failed_login_attempts == 5
        assert reloaded.lockout_until == until
        assert reloaded.lockout_count == 1

    def test_save_updates_status_and_password(self, repo, session):
        u = UserFactory()
        session.commit()

        repo.save(replace(repo.get(u.id), status=UserStatus.SUSPENDED, password_hash="new-hash"))
        reloaded = repo.get(u.id)
        assert reloaded.status is UserStatus.SUSPENDED
        assert reloaded.password_hash == "new-hash"

    def test_save_unknown_account_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.save(UserAccount(id="missing", email="x@example.com", password_hash="h"))

    def test_add_duplicate_email_raises(self, repo):
        repo.add(UserAccount(id="", email="dup@example.com", password_hash="h"))
        with pytest.raises(DuplicateEmailError):
            repo.add(UserAccount(id="", email="DUP@example.com", password_hash="h"))
        assert repo.get_by_email("dup@example.com") is not None

    def test_register_failed_login_counts_then_locks(self, repo, session):
        u = UserFactory()
        session.commit()
        policy = LockoutPolicy(max_failed_attempts=2)

        first = repo.register_failed_login(u.id, START, policy)
        assert not first.locked
        assert first.account.failed_login_attempts == 1
        assert first.account.last_failed_login_at == START

        second = repo.register_failed_login(u.id, START, policy)
        assert second.locked
        assert second.account.failed_login_attempts == 2
        assert second.account.lockout_count == 1
        assert second.account.lockout_until == START + timedelta(minutes=15)

    def test_register_failed_login_ignores_failures_while_locked(self, repo, session):
        u = UserFactory()
        session.commit()
        policy = LockoutPolicy(max_failed_attempts=1)
        locked = repo.register_failed_login(u.id, START, policy).account

        outcome = repo.register_failed_login(u.id, START + timedelta(minutes=1), policy)
        assert not outcome.locked
        assert outcome.account == locked

    def test_failure_after_expired_lock_relocks_longer(self, repo, session):
        u = UserFactory()
        session.commit()
        policy = LockoutPolicy(max_failed_attempts=1)
        repo.register_failed_login(u.id, START, policy)

        later = START + timedelta(minutes=16)
        outcome = repo.register_failed_login(u.id, later, policy)
        assert outcome.locked
        assert outcome.account.lockout_count == 2
        assert outcome.account.lockout_until == later + timedelta(minutes=30)

    def test_register_failed_login_unknown_user(self, repo):
        assert repo.register_failed_login("missing", START, LockoutPolicy()) is None

    def test_register_failed_login_leaves_password_alone(self, repo, session):
        u = UserFactory()
        session.commit()
        repo.change_password(u.id, "fresh-hash")
        outcome = repo.register_failed_login(u.id, START, LockoutPolicy())
        assert outcome.account.password_hash == "fresh-hash"

    def test_register_successful_login_requires_unchanged_hash(self, repo, session):
        u = UserFactory()
        session.commit()
        repo.register_failed_login(u.id, START, LockoutPolicy(max_failed_attempts=1))

        assert repo.register_successful_login(u.id, START, expected_hash="stale") is None
        assert repo.get(u.id).failed_login_attempts == 1

        account = repo.register_successful_login(u.id, START, expected_hash=u.password_hash)
        assert account.failed_login_attempts == 0
        assert account.lockout_until is None
        assert account.lockout_count == 1
        assert account.last_login_at == START

    def test_change_password_is_conditional_on_expected_hash(self, repo, session):
        u = UserFactory()
        session.commit()
        original = u.password_hash

        assert not repo.change_password(u.id, "other", expected_hash="stale")
        assert repo.get(u.id).password_hash == original

        assert repo.change_password(u.id, "rehashed", expected_hash=original)
        assert repo.get(u.id).password_hash == "rehashed"

    def test_change_password_can_clear_lockout(self, repo, session):
        u = UserFactory()
        session.commit()
        repo.register_failed_login(u.id, START, LockoutPolicy(max_failed_attempts=1))

        assert repo.change_password(u.id, "new-hash", changed_at=START, clear_lockout=True)
        reloaded = repo.get(u.id)
        assert reloaded.password_changed_at == START
        assert reloaded.failed_login_attempts == 0
        assert reloaded.lockout_until is None

    def test_activate_only_moves_pending_accounts(self, repo, session):
        pending = UserFactory(status="PENDING_VERIFICATION")
        active = UserFactory()
        session.commit()

        assert repo.activate(pending.id)
        assert repo.get(pending.id).status is UserStatus.ACTIVE
        assert not repo.activate(pending.id)
        assert not repo.activate(active.id)
