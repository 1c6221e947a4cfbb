# authcore/services/password_reset/dto.py
from __future__ import annotations

from dataclasses import dataclass

GENERIC_RESET_MESSAGE = (
    "If an account exists with this email, you will receive password reset instructions shortly."
)
RESET_COMPLETED_MESSAGE = "Password has been reset successfully. Please sign in again."


@dataclass(frozen=True, slots=True)
class RequestResetIn:
    """
    :param email: Address the reset is requested for.
    :param client_ip: Caller address used as rate-limit subject.
    """

    email: str
    client_ip: str | None = None


@dataclass(frozen=True, slots=True)
class RequestResetOut:
    """
    :param message: Always :data:`GENERIC_RESET_MESSAGE`.
    :param token: Raw reset token, only when exposure is enabled (development).
    """

    message: str = GENERIC_RESET_MESSAGE
    token: str | None = None


@dataclass(frozen=True, slots=True)
class ConfirmResetIn:
    """
    :param token: Reset token received by the user.
    :param new_password: Replacement password.
    :param confirm_password: Must equal ``new_password``.
    """

    token: str
    new_password: str
    confirm_password: str


@dataclass(frozen=True, slots=True)
class ConfirmResetOut:
    """
    :param message: Human-readable confirmation.
    :param revoked_sessions: Refresh tokens revoked by the password change.
    """

    message: str
    revoked_sessions: int
