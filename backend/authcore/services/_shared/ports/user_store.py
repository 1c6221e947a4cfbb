"""Account store port, account read-model and in-memory implementation."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

from authcore.services._shared.errors import NotFoundError

if TYPE_CHECKING:
    from authcore.services._shared.policies.lockout import FailureOutcome, LockoutPolicy


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    SUSPENDED = "SUSPENDED"
    DEACTIVATED = "DEACTIVATED"


# Statuses allowed to request a password reset
RESETTABLE_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.PENDING_VERIFICATION})


class DuplicateEmailError(ValueError):
    """Raised by :meth:`UserAccountStore.add` when the email is already registered."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True, slots=True)
class UserAccount:
    """
    Credential and lockout state of a user.

    :ivar id: User id (string form).
    :ivar email: Normalized email.
    :ivar password_hash: Stored credential hash.
    :ivar status: Account status.
    :ivar failed_login_attempts: Consecutive failures since the last success.
    :ivar lockout_until: End of the current lock, if any.
    :ivar lockout_count: Number of times the account was ever locked.
    """

    id: str
    email: str
    password_hash: str
    status: UserStatus = UserStatus.ACTIVE
    failed_login_attempts: int = 0
    lockout_until: datetime | None = None
    lockout_count: int = 0
    last_failed_login_at: datetime | None = None
    last_login_at: datetime | None = None
    password_changed_at: datetime | None = None

    @property
    def can_login(self) -> bool:
        return self.status is UserStatus.ACTIVE

    @property
    def can_reset_password(self) -> bool:
        return self.status in RESETTABLE_STATUSES

    def with_password(self, password_hash: str, *, changed_at: datetime | None = None) -> UserAccount:
        return replace(
            self,
            password_hash=password_hash,
            password_changed_at=changed_at if changed_at is not None else self.password_changed_at,
        )


class UserAccountStore(Protocol):
    """Persistence port for accounts used by the session use cases."""

    def get(self, user_id: str) -> UserAccount | None:
        """Fetch by id."""

    def get_by_email(self, email: str) -> UserAccount | None:
        """Fetch by email, case-insensitively."""

    def add(self, account: UserAccount) -> UserAccount:
        """Insert a new account. :raises DuplicateEmailError: if the email is taken."""

    def save(self, account: UserAccount) -> None:
        """Overwrite the stored state of an existing account."""

    def register_failed_login(
        self, user_id: str, now: datetime, policy: LockoutPolicy
    ) -> FailureOutcome | None:
        """
        Count one failed login and lock the account when the threshold is hit.

        Atomic against concurrent failures and touches only lockout columns.
        Failures while the account is locked are not counted.

        :returns: The outcome, or ``None`` if the account does not exist.
        """

    def register_successful_login(
        self, user_id: str, now: datetime, *, expected_hash: str
    ) -> UserAccount | None:
        """
        Clear failures and lock, stamp ``last_login_at``.

        Applied only while the stored hash still equals ``expected_hash``.

        :returns: Updated account, or ``None`` when the hash changed meanwhile.
        """

    def change_password(
        self,
        user_id: str,
        password_hash: str,
        *,
        changed_at: datetime | None = None,
        expected_hash: str | None = None,
        clear_lockout: bool = False,
    ) -> bool:
        """
        Replace the credential hash.

        :param changed_at: New ``password_changed_at``; unchanged when ``None``.
        :param expected_hash: Only write while the stored hash equals this.
        :param clear_lockout: Also reset the failure counter and current lock.
        :returns: ``True`` when the row was updated.
        """

    def activate(self, user_id: str) -> bool:
        """Move a ``PENDING_VERIFICATION`` account to ``ACTIVE``."""


class InMemoryUserStore(UserAccountStore):
    """Thread-safe dictionary-backed account store."""

    def __init__(self) -> None:
        self._by_id: dict[str, UserAccount] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> UserAccount | None:
        with self._lock:
            return self._by_id.get(str(user_id))

    def get_by_email(self, email: str) -> UserAccount | None:
        wanted = normalize_email(email)
        with self._lock:
            return next((a for a in self._by_id.values() if a.email == wanted), None)

    def add(self, account: UserAccount) -> UserAccount:
        stored = replace(account, id=account.id or uuid4().hex, email=normalize_email(account.email))
        with self._lock:
            if any(a.email == stored.email for a in self._by_id.values()):
                raise DuplicateEmailError(f"email already registered: {stored.email}")
            self._by_id[stored.id] = stored
        return stored

    def save(self, account: UserAccount) -> None:
        with self._lock:
            if account.id not in self._by_id:
                raise NotFoundError("User", account.id)
            self._by_id[account.id] = account

    def register_failed_login(
        self, user_id: str, now: datetime, policy: LockoutPolicy
    ) -> FailureOutcome | None:
        with self._lock:
            account = self._by_id.get(str(user_id))
            if account is None:
                return None
            outcome = policy.register_failure(account, now)
            self._by_id[account.id] = outcome.account
            return outcome

    def register_successful_login(
        self, user_id: str, now: datetime, *, expected_hash: str
    ) -> UserAccount | None:
        with self._lock:
            account = self._by_id.get(str(user_id))
            if account is None or account.password_hash != expected_hash:
                return None
            updated = replace(account, failed_login_attempts=0, lockout_until=None, last_login_at=now)
            self._by_id[account.id] = updated
            return updated

    def change_password(
        self,
        user_id: str,
        password_hash: str,
        *,
        changed_at: datetime | None = None,
        expected_hash: str | None = None,
        clear_lockout: bool = False,
    ) -> bool:
        with self._lock:
            account = self._by_id.get(str(user_id))
            if account is None:
                return False
            if expected_hash is not None and account.password_hash != expected_hash:
                return False
            updated = account.with_password(password_hash, changed_at=changed_at)
            if clear_lockout:
                updated = replace(updated, failed_login_attempts=0, lockout_until=None)
            self._by_id[account.id] = updated
            return True

    def activate(self, user_id: str) -> bool:
        with self._lock:
            account = self._by_id.get(str(user_id))
            if account is None or account.status is not UserStatus.PENDING_VERIFICATION:
                return False
            self._by_id[account.id] = replace(account, status=UserStatus.ACTIVE)
            return True
