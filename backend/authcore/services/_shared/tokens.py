"""
Immutable token value types.

All three token kinds are frozen dataclasses built through class-level
factories. State changes (``mark_rotated``, ``mark_used`` ...) return a new
instance and refuse transitions out of terminal states; persisting the new
state atomically is the job of the stores.

Expiry convention: a token is expired when ``now >= expires_at``.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar

ACCESS_TOKEN_VALIDITY = timedelta(seconds=18000)
REFRESH_TOKEN_VALIDITY = timedelta(seconds=259200)
PASSWORD_RESET_TOKEN_VALIDITY = timedelta(seconds=1800)

# Characters of the raw value shown by ``str()``
_VISIBLE_PREFIX = 10


class InvalidTokenTransition(ValueError):
    """Raised when a status change is not allowed from the current status."""


def token_digest(value: str) -> str:
    """Return the SHA-256 hex digest under which a token value is stored."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _redact(value: str | None) -> str:
    if not value:
        return "<none>"
    return f"{value[:_VISIBLE_PREFIX]}..."


def _remaining_seconds(expires_at: datetime, now: datetime) -> int:
    return max(0, math.floor((expires_at - now).total_seconds()))


def _check_window(issued_at: datetime, expires_at: datetime) -> None:
    if issued_at.tzinfo is None or expires_at.tzinfo is None:
        raise ValueError("token timestamps must be timezone-aware")
    if expires_at <= issued_at:
        raise ValueError("expires_at must be after issued_at")


# --------------------------------------------------------------------------- #
# Access token
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class AccessToken:
    """
    Stateless access token; never persisted server-side.

    :ivar value: Opaque signed value handed to the client.
    :ivar user_id: Subject user id.
    :ivar issued_at: Issue instant (UTC).
    :ivar expires_at: ``issued_at + validity``.
    """

    value: str = field(repr=False)
    user_id: str
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        _check_window(self.issued_at, self.expires_at)

    @classmethod
    def create(
        cls,
        *,
        value: str,
        user_id: str,
        issued_at: datetime,
        validity: timedelta = ACCESS_TOKEN_VALIDITY,
    ) -> AccessToken:
        return cls(value=value, user_id=user_id, issued_at=issued_at, expires_at=issued_at + validity)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def remaining_seconds(self, now: datetime) -> int:
        """Whole seconds left before expiry, floored and never negative."""
        return _remaining_seconds(self.expires_at, now)

    def __str__(self) -> str:
        return f"AccessToken({_redact(self.value)} user={self.user_id})"


# --------------------------------------------------------------------------- #
# Refresh token
# --------------------------------------------------------------------------- #


class RefreshTokenStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ROTATED = "ROTATED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True, slots=True)
class RefreshToken:
    """
    Server-side record of a refresh token.

    A family is the set of tokens sharing ``family_root_id``; the root is
    the token issued at login and its ``family_root_id`` is its own id.

    :ivar token_id: Server-assigned id, independent of the signed value.
    :ivar user_id: Owning user.
    :ivar family_root_id: Id of the family root (denormalised at write time).
    :ivar issued_at: Issue instant (UTC).
    :ivar expires_at: ``issued_at + validity``.
    :ivar token_hash: SHA-256 digest of the signed value.
    :ivar parent_token_id: Rotated predecessor; ``None`` for a root.
    :ivar status: Lifecycle status.
    :ivar device_info: Optional client descriptor.
    :ivar value: Raw signed value, only present right after issuance.
    """

    TERMINAL: ClassVar[frozenset[RefreshTokenStatus]] = frozenset(
        {RefreshTokenStatus.ROTATED, RefreshTokenStatus.REVOKED, RefreshTokenStatus.EXPIRED}
    )

    token_id: str
    user_id: str
    family_root_id: str
    issued_at: datetime
    expires_at: datetime
    token_hash: str
    parent_token_id: str | None = None
    status: RefreshTokenStatus = RefreshTokenStatus.ACTIVE
    device_info: str | None = None
    value: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_window(self.issued_at, self.expires_at)

    # ---- factories ----

    @classmethod
    def issue_root(
        cls,
        *,
        token_id: str,
        user_id: str,
        value: str,
        issued_at: datetime,
        validity: timedelta = REFRESH_TOKEN_VALIDITY,
        device_info: str | None = None,
    ) -> RefreshToken:
        """Create the first token of a new family."""
        return cls(
            token_id=token_id,
            user_id=user_id,
            family_root_id=token_id,
            issued_at=issued_at,
            expires_at=issued_at + validity,
            token_hash=token_digest(value),
            device_info=device_info,
            value=value,
        )

    @classmethod
    def rotate_from(
        cls,
        parent: RefreshToken,
        *,
        token_id: str,
        value: str,
        issued_at: datetime,
        validity: timedelta = REFRESH_TOKEN_VALIDITY,
        device_info: str | None = None,
    ) -> RefreshToken:
        """
        Create the ACTIVE child that replaces ``parent``.

        :raises InvalidTokenTransition: If ``parent`` is not ACTIVE.
        """
        if parent.status is not RefreshTokenStatus.ACTIVE:
            raise InvalidTokenTransition(f"cannot rotate from {parent.status.value} token")
        return cls(
            token_id=token_id,
            user_id=parent.user_id,
            family_root_id=parent.family_root_id,
            issued_at=issued_at,
            expires_at=issued_at + validity,
            token_hash=token_digest(value),
            parent_token_id=parent.token_id,
            device_info=device_info if device_info is not None else parent.device_info,
            value=value,
        )

    # ---- queries ----

    @property
    def is_root(self) -> bool:
        return self.parent_token_id is None

    @property
    def is_active(self) -> bool:
        return self.status is RefreshTokenStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def remaining_seconds(self, now: datetime) -> int:
        return _remaining_seconds(self.expires_at, now)

    # ---- transitions ----

    def mark_rotated(self) -> RefreshToken:
        if self.status is not RefreshTokenStatus.ACTIVE:
            raise InvalidTokenTransition(f"cannot rotate {self.status.value} token")
        return replace(self, status=RefreshTokenStatus.ROTATED)

    def mark_revoked(self) -> RefreshToken:
        """Revoke an ACTIVE or ROTATED token (family revocation covers both)."""
        if self.status not in (RefreshTokenStatus.ACTIVE, RefreshTokenStatus.ROTATED):
            raise InvalidTokenTransition(f"cannot revoke {self.status.value} token")
        return replace(self, status=RefreshTokenStatus.REVOKED)

    def mark_expired(self) -> RefreshToken:
        if self.status is not RefreshTokenStatus.ACTIVE:
            raise InvalidTokenTransition(f"cannot expire {self.status.value} token")
        return replace(self, status=RefreshTokenStatus.EXPIRED)

    def without_value(self) -> RefreshToken:
        """Copy safe to persist: the raw value is dropped."""
        return replace(self, value=None)

    def __str__(self) -> str:
        return f"RefreshToken(id={self.token_id} status={self.status.value})"


# --------------------------------------------------------------------------- #
# Password reset token
# --------------------------------------------------------------------------- #


class PasswordResetTokenStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    REVOKED = "REVOKED"


@dataclass(frozen=True, slots=True)
class PasswordResetToken:
    """
    Single-use password reset token.

    :ivar token_id: Server-assigned id.
    :ivar user_id: Owning user.
    :ivar email: Owner email snapshot at issuance.
    :ivar issued_at: Issue instant (UTC).
    :ivar expires_at: ``issued_at + validity``.
    :ivar token_hash: SHA-256 digest of the signed value.
    :ivar status: ACTIVE, USED or REVOKED; monotonic.
    :ivar used_at: Set when consumed.
    :ivar revoked_at: Set when superseded or revoked.
    :ivar value: Raw signed value, only present right after issuance.
    """

    token_id: str
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime
    token_hash: str
    status: PasswordResetTokenStatus = PasswordResetTokenStatus.ACTIVE
    used_at: datetime | None = None
    revoked_at: datetime | None = None
    value: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_window(self.issued_at, self.expires_at)

    @classmethod
    def issue(
        cls,
        *,
        token_id: str,
        user_id: str,
        email: str,
        value: str,
        issued_at: datetime,
        validity: timedelta = PASSWORD_RESET_TOKEN_VALIDITY,
    ) -> PasswordResetToken:
        return cls(
            token_id=token_id,
            user_id=user_id,
            email=email,
            issued_at=issued_at,
            expires_at=issued_at + validity,
            token_hash=token_digest(value),
            value=value,
        )

    @property
    def is_active(self) -> bool:
        return self.status is PasswordResetTokenStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def remaining_seconds(self, now: datetime) -> int:
        return _remaining_seconds(self.expires_at, now)

    def mark_used(self, at: datetime) -> PasswordResetToken:
        if self.status is not PasswordResetTokenStatus.ACTIVE:
            raise InvalidTokenTransition(f"cannot use {self.status.value} reset token")
        return replace(self, status=PasswordResetTokenStatus.USED, used_at=at)

    def mark_revoked(self, at: datetime) -> PasswordResetToken:
        if self.status is not PasswordResetTokenStatus.ACTIVE:
            raise InvalidTokenTransition(f"cannot revoke {self.status.value} reset token")
        return replace(self, status=PasswordResetTokenStatus.REVOKED, revoked_at=at)

    def without_value(self) -> PasswordResetToken:
        return replace(self, value=None)

    def __str__(self) -> str:
        return f"PasswordResetToken(id={self.token_id} status={self.status.value})"


__all__ = [
    "ACCESS_TOKEN_VALIDITY",
    "REFRESH_TOKEN_VALIDITY",
    "PASSWORD_RESET_TOKEN_VALIDITY",
    "InvalidTokenTransition",
    "token_digest",
    "AccessToken",
    "RefreshTokenStatus",
    "RefreshToken",
    "PasswordResetTokenStatus",
    "PasswordResetToken",
]
