"""Tests for the immutable token value types."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime, timedelta

import pytest
from authcore.services._shared.tokens import (
    PASSWORD_RESET_TOKEN_VALIDITY,
    REFRESH_TOKEN_VALIDITY,
    AccessToken,
    InvalidTokenTransition,
    PasswordResetToken,
    PasswordResetTokenStatus,
    RefreshToken,
    RefreshTokenStatus,
    token_digest,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
RAW = "eyJhbGciOiJIUzI1NiJ9.secret-payload.signature"


def _root(**overrides) -> RefreshToken:
    params = dict(token_id="rt-1", user_id="u-1", value=RAW, issued_at=T0)
    params.update(overrides)
    return RefreshToken.issue_root(**params)


class TestAccessToken:
    def test_expiry_is_issued_at_plus_validity(self):
        token = AccessToken.create(value=RAW, user_id="u-1", issued_at=T0, validity=timedelta(hours=5))
        assert token.expires_at == T0 + timedelta(hours=5)

    def test_expiry_boundary_is_inclusive(self):
        validity = timedelta(hours=5)
        token = AccessToken.create(value=RAW, user_id="u-1", issued_at=T0, validity=validity)
        assert token.is_expired(T0 + validity) is True
        assert token.is_expired(T0 + validity - timedelta(milliseconds=1)) is False

    def test_remaining_seconds_floors_and_never_goes_negative(self):
        token = AccessToken.create(value=RAW, user_id="u-1", issued_at=T0, validity=timedelta(seconds=10))
        assert token.remaining_seconds(T0 + timedelta(seconds=2, milliseconds=500)) == 7
        assert token.remaining_seconds(T0 + timedelta(days=1)) == 0

    def test_string_forms_never_contain_the_raw_value(self):
        token = AccessToken.create(value=RAW, user_id="u-1", issued_at=T0)
        assert RAW not in str(token)
        assert RAW not in repr(token)
        assert RAW[:10] in str(token)

    def test_is_immutable(self):
        token = AccessToken.create(value=RAW, user_id="u-1", issued_at=T0)
        with pytest.raises(FrozenInstanceError):
            token.user_id = "u-2"  # type: ignore[misc]

    def test_rejects_naive_timestamps(self):
        with pytest.raises(ValueError):
            AccessToken.create(value=RAW, user_id="u-1", issued_at=datetime(2024, 5, 1))


class TestRefreshToken:
    def test_root_is_its_own_family(self):
        root = _root()
        assert root.is_root
        assert root.family_root_id == "rt-1"
        assert root.status is RefreshTokenStatus.ACTIVE
        assert root.expires_at == T0 + REFRESH_TOKEN_VALIDITY
        assert root.token_hash == token_digest(RAW)

    def test_rotate_from_links_child_to_parent_and_family(self):
        root = _root(device_info="firefox")
        child = RefreshToken.rotate_from(root, token_id="rt-2", value="other", issued_at=T0 + timedelta(hours=1))
        assert child.parent_token_id == "rt-1"
        assert child.family_root_id == "rt-1"
        assert child.user_id == "u-1"
        assert child.device_info == "firefox"
        assert not child.is_root

    def test_rotate_from_requires_active_parent(self):
        rotated = _root().mark_rotated()
        with pytest.raises(InvalidTokenTransition):
            RefreshToken.rotate_from(rotated, token_id="rt-2", value="other", issued_at=T0)

    def test_transitions_return_new_instances(self):
        root = _root()
        rotated = root.mark_rotated()
        assert root.status is RefreshTokenStatus.ACTIVE
        assert rotated.status is RefreshTokenStatus.ROTATED
        assert rotated.token_id == root.token_id

    @pytest.mark.parametrize("terminal", ["mark_revoked", "mark_expired"])
    def test_terminal_states_never_revert(self, terminal):
        token = getattr(_root(), terminal)()
        with pytest.raises(InvalidTokenTransition):
            token.mark_rotated()
        with pytest.raises(InvalidTokenTransition):
            token.mark_revoked()

    def test_rotated_token_can_still_be_revoked_by_family_revocation(self):
        assert _root().mark_rotated().mark_revoked().status is RefreshTokenStatus.REVOKED

    def test_value_is_not_part_of_equality_or_repr(self):
        token = _root()
        assert token == token.without_value()
        assert RAW not in repr(token)
        assert str(token) == "RefreshToken(id=rt-1 status=ACTIVE)"

    def test_expiry_boundary_is_inclusive(self):
        token = _root(validity=timedelta(days=3))
        assert token.is_expired(T0 + timedelta(days=3))
        assert not token.is_expired(T0 + timedelta(days=3) - timedelta(milliseconds=1))


class TestPasswordResetToken:
    def _issue(self) -> PasswordResetToken:
        return PasswordResetToken.issue(
            token_id="prt-1", user_id="u-1", email="a@example.com", value=RAW, issued_at=T0
        )

    def test_short_fixed_validity(self):
        token = self._issue()
        assert token.expires_at - token.issued_at == PASSWORD_RESET_TOKEN_VALIDITY
        assert token.is_expired(T0 + PASSWORD_RESET_TOKEN_VALIDITY)

    def test_used_is_terminal(self):
        used = self._issue().mark_used(T0)
        assert used.status is PasswordResetTokenStatus.USED
        assert used.used_at == T0
        with pytest.raises(InvalidTokenTransition):
            used.mark_used(T0)
        with pytest.raises(InvalidTokenTransition):
            used.mark_revoked(T0)

    def test_revoked_records_instant(self):
        revoked = self._issue().mark_revoked(T0 + timedelta(minutes=1))
        assert revoked.revoked_at == T0 + timedelta(minutes=1)
        assert not revoked.is_active
