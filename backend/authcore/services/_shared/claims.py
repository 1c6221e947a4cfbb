"""
Typed claim sets carried inside signed tokens.

Each token purpose has a fixed claim schema. The codec serialises a claim
object to a flat payload (``sub``, ``purpose`` and the purpose-specific keys)
and parses it back into exactly one of the classes below; unknown purposes or
missing keys are rejected instead of being passed through as an open map.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias


class TokenPurpose(str, Enum):
    """Discriminator stored in the ``purpose`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


class ClaimsError(ValueError):
    """Raised when a payload does not match any known claim schema."""


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Claims of an access token.

    :ivar subject: User id.
    :ivar email: Email snapshot at issuance.
    """

    subject: str
    email: str

    purpose = TokenPurpose.ACCESS

    def to_payload(self) -> dict[str, Any]:
        return {"sub": self.subject, "email": self.email, "purpose": self.purpose.value}


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    """
    Claims of a refresh token.

    :ivar subject: User id.
    :ivar token_id: Server-assigned refresh token id (``tid``).
    """

    subject: str
    token_id: str

    purpose = TokenPurpose.REFRESH

    def to_payload(self) -> dict[str, Any]:
        return {"sub": self.subject, "tid": self.token_id, "purpose": self.purpose.value}


@dataclass(frozen=True, slots=True)
class PasswordResetClaims:
    """
    Claims of a password-reset token.

    :ivar subject: User id.
    :ivar token_id: Server-assigned reset token id (``tid``).
    """

    subject: str
    token_id: str

    purpose = TokenPurpose.PASSWORD_RESET

    def to_payload(self) -> dict[str, Any]:
        return {"sub": self.subject, "tid": self.token_id, "purpose": self.purpose.value}


@dataclass(frozen=True, slots=True)
class EmailVerificationClaims:
    """
    Claims of an email-verification token.

    :ivar subject: User id.
    :ivar email: Address being verified.
    """

    subject: str
    email: str

    purpose = TokenPurpose.EMAIL_VERIFICATION

    def to_payload(self) -> dict[str, Any]:
        return {"sub": self.subject, "email": self.email, "purpose": self.purpose.value}


TokenClaims: TypeAlias = AccessClaims | RefreshClaims | PasswordResetClaims | EmailVerificationClaims


def _required_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ClaimsError(f"missing or invalid claim: {key}")
    return value


def claims_from_payload(payload: Mapping[str, Any]) -> TokenClaims:
    """
    Parse a decoded payload into its typed claim set.

    :param payload: Decoded token payload.
    :returns: The claim object matching the ``purpose`` claim.
    :raises ClaimsError: If the purpose is unknown or a required claim is missing.
    """
    raw_purpose = payload.get("purpose")
    try:
        purpose = TokenPurpose(raw_purpose)
    except ValueError as exc:
        raise ClaimsError(f"unknown token purpose: {raw_purpose!r}") from exc

    subject = _required_str(payload, "sub")
    if purpose is TokenPurpose.ACCESS:
        return AccessClaims(subject=subject, email=_required_str(payload, "email"))
    if purpose is TokenPurpose.REFRESH:
        return RefreshClaims(subject=subject, token_id=_required_str(payload, "tid"))
    if purpose is TokenPurpose.EMAIL_VERIFICATION:
        return EmailVerificationClaims(subject=subject, email=_required_str(payload, "email"))
    return PasswordResetClaims(subject=subject, token_id=_required_str(payload, "tid"))


__all__ = [
    "TokenPurpose",
    "ClaimsError",
    "AccessClaims",
    "RefreshClaims",
    "PasswordResetClaims",
    "EmailVerificationClaims",
    "TokenClaims",
    "claims_from_payload",
]
