"""
Signed-token codec port.

The codec turns a typed claim set into an opaque signed string and back. The
signature scheme is the adapter's business; the contract here is the claim
schema, expiry enforcement against the injected clock, and the rejection
taxonomy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from authcore.services._shared.claims import TokenClaims


class TokenRejection(str, Enum):
    """Why a token failed verification."""

    EXPIRED = "expired"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """
    Outcome of :meth:`TokenCodec.verify`.

    Exactly one of ``claims`` / ``reason`` is set.
    """

    claims: TokenClaims | None = None
    reason: TokenRejection | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def valid(self) -> bool:
        return self.claims is not None and self.reason is None

    @classmethod
    def ok(cls, claims: TokenClaims, *, issued_at: datetime, expires_at: datetime) -> VerificationResult:
        return cls(claims=claims, issued_at=issued_at, expires_at=expires_at)

    @classmethod
    def rejected(cls, reason: TokenRejection) -> VerificationResult:
        return cls(reason=reason)


class TokenCodec(Protocol):
    """Issue and verify signed tokens."""

    def issue(self, claims: TokenClaims, ttl: timedelta, *, now: datetime | None = None) -> str:
        """
        Sign ``claims`` with an ``iat``/``exp`` window of ``ttl``.

        :param now: Issue instant; defaults to the codec's clock.
        """

    def verify(self, token: str) -> VerificationResult:
        """Check signature, claim schema and expiry (``now >= exp`` is expired)."""

    def decode_without_verifying(self, token: str) -> TokenClaims | None:
        """Parse claims without any signature or expiry check; ``None`` if unparsable."""
