"""Unit tests for InMemoryResetTokenStore."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from authcore.services._shared.ports import InMemoryResetTokenStore
from authcore.services._shared.tokens import PasswordResetToken, PasswordResetTokenStatus

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _issue(store, user_id="u-1", issued_at=T0) -> PasswordResetToken:
    token_id = store.new_token_id()
    token = PasswordResetToken.issue(
        token_id=token_id, user_id=user_id, email=f"{user_id}@example.com", value=f"v-{token_id}", issued_at=issued_at
    )
    store.save(token)
    return token


@pytest.fixture
def store():
    return InMemoryResetTokenStore()


def test_mark_used_is_single_use(store):
    token = _issue(store)
    assert store.mark_used(token.token_id, T0) is True
    assert store.mark_used(token.token_id, T0) is False
    stored = store.find_by_hash(token.token_hash)
    assert stored.status is PasswordResetTokenStatus.USED
    assert stored.used_at == T0
    assert stored.value is None


def test_revoke_all_by_user_only_touches_active_tokens(store):
    first = _issue(store)
    second = _issue(store)
    store.mark_used(first.token_id, T0)
    _issue(store, user_id="u-2")

    assert store.revoke_all_by_user("u-1", T0 + timedelta(minutes=1)) == 1
    assert store.find_by_id(first.token_id).status is PasswordResetTokenStatus.USED
    revoked = store.find_by_id(second.token_id)
    assert revoked.status is PasswordResetTokenStatus.REVOKED
    assert revoked.revoked_at == T0 + timedelta(minutes=1)
    assert [t.status for t in store.list_by_user("u-2")] == [PasswordResetTokenStatus.ACTIVE]


def test_revoked_token_cannot_be_used(store):
    token = _issue(store)
    store.revoke_all_by_user("u-1", T0)
    assert store.mark_used(token.token_id, T0) is False


def test_delete_expired(store):
    old = _issue(store)
    _issue(store, issued_at=T0 + timedelta(hours=1))
    assert store.delete_expired(old.expires_at) == 1
    assert store.find_by_hash(old.token_hash) is None


def test_concurrent_mark_used_has_one_winner(store):
    token = _issue(store)
    barrier = threading.Barrier(6)
    outcomes: list[bool] = []

    def consume():
        barrier.wait()
        outcomes.append(store.mark_used(token.token_id, T0))

    threads = [threading.Thread(target=consume) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert outcomes.count(True) == 1
