"""Tiny helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime

from authcore.services._shared.ports import PasswordHasher, UserAccount, UserAccountStore, UserStatus

# Instant every FixedClock in the suite starts from
START = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

DEFAULT_PASSWORD = "Passw0rd!"
NEW_PASSWORD = "N3w-Secret!"


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not be raised within the context.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc


def make_account(
    store: UserAccountStore,
    hasher: PasswordHasher,
    *,
    email: str = "alice@example.com",
    password: str = DEFAULT_PASSWORD,
    status: UserStatus = UserStatus.ACTIVE,
) -> UserAccount:
    """Register an account with a hashed password in ``store``."""
    return store.add(
        UserAccount(id="", email=email, password_hash=hasher.hash(password), status=status)
    )
