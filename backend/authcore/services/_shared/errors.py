"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between stores, policies and
application services.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py`` via ``BaseService.translate_exceptions()``.

Security-sensitive errors render the same public message for every internal
cause; the distinguishing detail is kept on attributes for audit logging only.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, policies or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in a store.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


# --------------------------------------------------------------------------- #
# Authentication taxonomy
# --------------------------------------------------------------------------- #


class AuthError(ServiceError):
    """
    Base class of authentication and session errors.

    :cvar code: Stable machine-readable identifier.
    :cvar public_message: Client-safe message; ``str()`` returns it.
    """

    code = "auth_error"
    public_message = "Authentication failed"

    def __str__(self) -> str:
        return self.public_message


class InvalidCredentialsError(AuthError):
    """Unknown email, wrong password or a non-active account, indistinguishably."""

    code = "invalid_credentials"
    public_message = "Invalid email or password"


class TokenExpiredError(AuthError):
    code = "token_expired"
    public_message = "Token has expired"


class TokenInvalidError(AuthError):
    """
    Malformed, badly signed, unknown or otherwise unusable token.

    :param reason: Internal cause, for logs only.
    """

    code = "token_invalid"
    public_message = "Invalid token"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason


class TokenRevokedError(TokenInvalidError):
    """A revoked token; surfaces exactly like :class:`TokenInvalidError`."""

    def __init__(self, reason: str | None = "revoked") -> None:
        super().__init__(reason)


class TokenReuseDetectedError(TokenInvalidError):
    """
    A consumed or revoked refresh token was presented again.

    Internal signal only: the public surface is :class:`TokenInvalidError`.

    :param token_id: Id of the replayed token.
    :param family_root_id: Root of the revoked family.
    :param revoked: Number of family members revoked.
    """

    def __init__(self, *, token_id: str, family_root_id: str, revoked: int) -> None:
        super().__init__("reuse_detected")
        self.token_id = token_id
        self.family_root_id = family_root_id
        self.revoked = revoked


class TokenAlreadyUsedError(AuthError):
    code = "token_already_used"
    public_message = "This reset token has already been used"


class AccountLockedError(AuthError):
    """
    Login rejected while the account is locked.

    :param remaining_seconds: Seconds until the lock ends (rounded up).
    """

    code = "account_locked"

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(remaining_seconds)
        self.remaining_seconds = int(remaining_seconds)

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return (
            "Account is temporarily locked due to too many failed login attempts. "
            f"Try again in {self.remaining_seconds} seconds."
        )


class RateLimitExceededError(AuthError):
    """
    Request budget exhausted for a rate-limit key.

    :param retry_after_seconds: Seconds until the window resets (rounded up).
    :param limit: Configured limit of the rule.
    """

    code = "rate_limit_exceeded"

    def __init__(self, retry_after_seconds: int, *, limit: int | None = None) -> None:
        super().__init__(retry_after_seconds)
        self.retry_after_seconds = int(retry_after_seconds)
        self.limit = limit

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return f"Too many requests. Try again in {self.retry_after_seconds} seconds."


class WeakCredentialError(AuthError):
    """
    New password violates the strength policy.

    :param missing: Human-readable unmet requirements.
    """

    code = "weak_password"
    public_message = "Password does not meet the strength requirements"

    def __init__(self, missing: Sequence[str]) -> None:
        super().__init__(list(missing))
        self.missing = list(missing)


class PasswordMismatchError(AuthError):
    code = "password_mismatch"
    public_message = "Passwords do not match"
