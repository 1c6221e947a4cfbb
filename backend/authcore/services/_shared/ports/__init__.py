"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the session use cases and their infrastructure.

Modules
-------
- :mod:`clock`:
    :class:`~.Clock` plus :class:`~.SystemClock` and :class:`~.FixedClock`.

- :mod:`password_hasher`:
    :class:`~.PasswordHasher`: credential hashing and upgrade detection.

- :mod:`token_codec`:
    :class:`~.TokenCodec`: signing and verification of typed claim sets.

- :mod:`refresh_token_store` / :mod:`reset_token_store`:
    Token persistence with atomic conditional status transitions.

- :mod:`rate_limiter`:
    :class:`~.RateLimiter`: fixed-window request counting.

- :mod:`user_store`:
    :class:`~.UserAccountStore`: credential and lockout state of accounts.

- :mod:`reset_token_sender`:
    :class:`~.ResetTokenSender`: delivery of reset tokens to their owner.

Design Notes
------------
Every port ships an in-memory implementation guarded by a single lock.
Durable adapters live under ``authcore.repositories`` (SQLAlchemy) and
``authcore.infra`` (Redis, PyJWT, Werkzeug).
"""

from __future__ import annotations

from .clock import Clock, FixedClock, SystemClock
from .password_hasher import PasswordHasher
from .rate_limiter import InMemoryRateLimiter, RateLimiter, RateLimitResult
from .refresh_token_store import InMemoryRefreshTokenStore, RefreshTokenStore
from .reset_token_sender import (
    InMemoryResetTokenSender,
    LoggingResetTokenSender,
    ResetMessage,
    ResetTokenSender,
)
from .reset_token_store import InMemoryResetTokenStore, ResetTokenStore
from .token_codec import TokenCodec, TokenRejection, VerificationResult
from .user_store import (
    DuplicateEmailError,
    InMemoryUserStore,
    UserAccount,
    UserAccountStore,
    UserStatus,
)

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "PasswordHasher",
    "TokenCodec",
    "TokenRejection",
    "VerificationResult",
    "RefreshTokenStore",
    "InMemoryRefreshTokenStore",
    "ResetTokenStore",
    "InMemoryResetTokenStore",
    "RateLimiter",
    "RateLimitResult",
    "InMemoryRateLimiter",
    "UserAccountStore",
    "UserAccount",
    "UserStatus",
    "DuplicateEmailError",
    "InMemoryUserStore",
    "ResetTokenSender",
    "ResetMessage",
    "InMemoryResetTokenSender",
    "LoggingResetTokenSender",
]
