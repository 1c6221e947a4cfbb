# authcore/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt
from jwt.exceptions import InvalidSignatureError, InvalidTokenError

from authcore.services._shared.claims import (
    ClaimsError,
    TokenClaims,
    TokenPurpose,
    claims_from_payload,
)
from authcore.services._shared.ports import Clock, SystemClock, TokenCodec
from authcore.services._shared.ports.token_codec import TokenRejection, VerificationResult

_REQUIRED_CLAIMS = ["exp", "iat", "sub", "purpose"]


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    HMAC-signed JWT adapter built on PyJWT.

    Each purpose is signed with its own secret, so a reset token can never
    pass as an access token even if the claims were forged to say so.

    Expiry is checked against the injected clock rather than PyJWT's wall
    clock: a token is expired when ``now >= exp``.

    :param secrets: Signing key per :class:`TokenPurpose`.
    :param clock: Time source for ``iat``/``exp`` and verification.
    :param algorithm: JWS algorithm (HMAC family).
    :param issuer: ``iss`` claim written and required.
    :param audience: ``aud`` claim written and required.
    """

    secrets: Mapping[TokenPurpose, str]
    clock: Clock = field(default_factory=SystemClock)
    algorithm: str = "HS256"
    issuer: str | None = None
    audience: str | None = None

    # -------------------- helpers --------------------

    def _key_for(self, purpose: Any) -> str | None:
        try:
            return self.secrets[TokenPurpose(purpose)]
        except (ValueError, KeyError):
            return None

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.astimezone(UTC).timestamp())

    @staticmethod
    def _peek(token: str) -> dict[str, Any] | None:
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except InvalidTokenError:
            return None
        return payload if isinstance(payload, dict) else None

    # -------------------- API ------------------------

    def issue(self, claims: TokenClaims, ttl: timedelta, *, now: datetime | None = None) -> str:
        key = self._key_for(claims.purpose)
        if key is None:
            raise ValueError(f"no signing key configured for {claims.purpose.value}")
        issued = self._to_ts(now or self.clock.now())
        payload: dict[str, Any] = {
            **claims.to_payload(),
            "iat": issued,
            "exp": issued + int(ttl.total_seconds()),
            # unique value per issuance, hence unique digests
            "jti": uuid4().hex,
        }
        if self.issuer:
            payload["iss"] = self.issuer
        if self.audience:
            payload["aud"] = self.audience
        return jwt.encode(payload, key, algorithm=self.algorithm)

    def verify(self, token: str) -> VerificationResult:
        unverified = self._peek(token)
        if unverified is None:
            return VerificationResult.rejected(TokenRejection.MALFORMED)
        key = self._key_for(unverified.get("purpose"))
        if key is None:
            return VerificationResult.rejected(TokenRejection.MALFORMED)

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except InvalidSignatureError:
            return VerificationResult.rejected(TokenRejection.BAD_SIGNATURE)
        except InvalidTokenError:
            return VerificationResult.rejected(TokenRejection.MALFORMED)

        try:
            claims = claims_from_payload(payload)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=UTC)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (ClaimsError, TypeError, ValueError, OverflowError):
            return VerificationResult.rejected(TokenRejection.MALFORMED)

        if self.clock.now() >= expires_at:
            return VerificationResult.rejected(TokenRejection.EXPIRED)
        return VerificationResult.ok(claims, issued_at=issued_at, expires_at=expires_at)

    def decode_without_verifying(self, token: str) -> TokenClaims | None:
        payload = self._peek(token)
        if payload is None:
            return None
        try:
            return claims_from_payload(payload)
        except ClaimsError:
            return None


def codec_from_config(config: Mapping[str, Any], clock: Clock) -> JWTTokenCodec:
    """Build the codec from Flask configuration keys."""
    return JWTTokenCodec(
        secrets={
            TokenPurpose.ACCESS: config["ACCESS_TOKEN_SECRET"],
            TokenPurpose.REFRESH: config["REFRESH_TOKEN_SECRET"],
            TokenPurpose.PASSWORD_RESET: config.get("RESET_TOKEN_SECRET") or config["ACCESS_TOKEN_SECRET"],
            TokenPurpose.EMAIL_VERIFICATION: (
                config.get("VERIFICATION_TOKEN_SECRET") or config["ACCESS_TOKEN_SECRET"]
            ),
        },
        clock=clock,
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
        issuer=config.get("JWT_ISSUER") or None,
        audience=config.get("JWT_AUDIENCE") or None,
    )
