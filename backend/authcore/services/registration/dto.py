# authcore/services/registration/dto.py
from __future__ import annotations

from dataclasses import dataclass

REGISTERED_MESSAGE = "Account created. Please verify your email before signing in."
VERIFIED_MESSAGE = "Email verified successfully. You can now sign in."


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    :param email: Login email; normalized before it is stored.
    :param password: Raw password, checked against the strength policy.
    :param confirm_password: Must equal ``password``.
    :param client_ip: Caller address used as rate-limit subject.
    """

    email: str
    password: str
    confirm_password: str
    client_ip: str | None = None


@dataclass(frozen=True, slots=True)
class RegisterOut:
    """
    :param user_id: Id of the created account.
    :param email: Normalized email.
    :param status: Always ``PENDING_VERIFICATION``.
    :param verification_token: Raw token, only when exposure is enabled (development).
    """

    user_id: str
    email: str
    status: str
    message: str = REGISTERED_MESSAGE
    verification_token: str | None = None


@dataclass(frozen=True, slots=True)
class VerifyEmailIn:
    token: str


@dataclass(frozen=True, slots=True)
class VerifyEmailOut:
    user_id: str
    email: str
    status: str
    message: str = VERIFIED_MESSAGE
