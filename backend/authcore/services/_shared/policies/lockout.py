"""
Progressive account lockout.

Each failed login increments ``failed_login_attempts``. Once the counter
reaches ``max_failed_attempts`` the account is locked for
``min(base_duration * lockout_count, max_duration)``, where ``lockout_count``
counts every lock ever applied. The failure counter survives an expired lock,
so a single further failure re-locks for longer. A successful login clears the
counter and the lock but keeps ``lockout_count``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from authcore.services._shared.ports.user_store import UserAccount


@dataclass(frozen=True, slots=True)
class FailureOutcome:
    """Account state after a failed attempt and whether it just got locked."""

    account: UserAccount
    locked: bool


@dataclass(frozen=True, slots=True)
class LockoutPolicy:
    """
    Lockout thresholds.

    :param max_failed_attempts: Failures that trigger a lock.
    :param base_duration: Duration of the first lock.
    :param max_duration: Upper bound of any lock.
    """

    max_failed_attempts: int = 5
    base_duration: timedelta = timedelta(minutes=15)
    max_duration: timedelta = timedelta(hours=1)

    def is_locked(self, account: UserAccount, now: datetime) -> bool:
        return account.lockout_until is not None and now < account.lockout_until

    def remaining_seconds(self, account: UserAccount, now: datetime) -> int:
        """Seconds left in the current lock, rounded up; 0 when not locked."""
        until = account.lockout_until
        if until is None or now >= until:
            return 0
        return math.ceil((until - now).total_seconds())

    def lock_duration(self, lockout_count: int) -> timedelta:
        return min(self.base_duration * max(1, lockout_count), self.max_duration)

    def register_failure(self, account: UserAccount, now: datetime) -> FailureOutcome:
        if self.is_locked(account, now):
            return FailureOutcome(account=account, locked=False)
        attempts = account.failed_login_attempts + 1
        updated = replace(account, failed_login_attempts=attempts, last_failed_login_at=now)
        if attempts < self.max_failed_attempts:
            return FailureOutcome(account=updated, locked=False)
        lockout_count = account.lockout_count + 1
        updated = replace(
            updated,
            lockout_count=lockout_count,
            lockout_until=now + self.lock_duration(lockout_count),
        )
        return FailureOutcome(account=updated, locked=True)
