"""Unit tests for PasswordResetTokenRepository."""

from datetime import UTC, datetime, timedelta

import pytest
from authcore.repositories.password_reset_token import PasswordResetTokenRepository
from authcore.services._shared.tokens import PasswordResetToken, PasswordResetTokenStatus, token_digest
from tests.factories.user import UserFactory

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class TestPasswordResetTokenRepository:
    @pytest.fixture()
    def repo(self):
        return PasswordResetTokenRepository()

    @pytest.fixture()
    def user(self, session):
        u = UserFactory(email="reset@example.com")
        session.commit()
        return u

    def _issue(self, repo, user, value):
        token = PasswordResetToken.issue(
            token_id=repo.new_token_id(), user_id=user.id, email=user.email, value=value, issued_at=NOW
        )
        repo.save(token)
        return token

    def test_mark_used_once(self, repo, user):
        token = self._issue(repo, user, "reset-1")
        used_at = NOW + timedelta(minutes=1)

        assert repo.mark_used(token.token_id, used_at) is True
        assert repo.mark_used(token.token_id, used_at) is False

        stored = repo.find_by_hash(token_digest("reset-1"))
        assert stored.status is PasswordResetTokenStatus.USED
        assert stored.used_at == used_at

    def test_revoke_all_by_user_skips_used_tokens(self, repo, user):
        used = self._issue(repo, user, "reset-1")
        repo.mark_used(used.token_id, NOW)
        self._issue(repo, user, "reset-2")
        self._issue(repo, user, "reset-3")

        assert repo.revoke_all_by_user(user.id, NOW) == 2
        statuses = sorted(t.status.value for t in repo.list_by_user(user.id))
        assert statuses == ["REVOKED", "REVOKED", "USED"]

    def test_delete_expired(self, repo, user):
        token = self._issue(repo, user, "reset-1")
        assert repo.delete_expired(token.expires_at - timedelta(seconds=1)) == 0
        assert repo.delete_expired(token.expires_at) == 1
        assert repo.find_by_id(token.token_id) is None
