# authcore/services/auth/service.py
from __future__ import annotations

import logging
from datetime import datetime

from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.claims import AccessClaims, RefreshClaims, TokenClaims
from authcore.services._shared.errors import (
    AccountLockedError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
    TokenReuseDetectedError,
)
from authcore.services._shared.policies.lockout import LockoutPolicy
from authcore.services._shared.ports import (
    Clock,
    PasswordHasher,
    RefreshTokenStore,
    TokenCodec,
    TokenRejection,
    UserAccount,
    UserAccountStore,
)
from authcore.services._shared.rate_limit import RateLimitGuard
from authcore.services._shared.tokens import (
    AccessToken,
    RefreshToken,
    RefreshTokenStatus,
    token_digest,
)
from authcore.services.auth.dto import (
    AccountOut,
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    LogoutOut,
    RefreshIn,
    SessionOut,
)

# Verified for unknown emails so that both failure paths cost one hash check
_TIMING_DUMMY_PASSWORD = "authcore:unknown-account"

_REUSED_STATUSES = (RefreshTokenStatus.ROTATED, RefreshTokenStatus.REVOKED)


class AuthService(BaseService):
    """
    Session lifecycle service (login / refresh / logout / authenticate).

    Refresh tokens rotate on every use: the presented token becomes ROTATED
    and an ACTIVE child joins its family. Presenting a ROTATED or REVOKED
    token again is a reuse event and revokes the whole family.
    """

    def __init__(
        self,
        *,
        users: UserAccountStore,
        refresh_store: RefreshTokenStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        rate_guard: RateLimitGuard | None = None,
        lockout: LockoutPolicy | None = None,
        token_cfg: AuthTokenConfig | None = None,
        clock: Clock | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param users: Account store (credentials and lockout state).
        :param refresh_store: Refresh token store with atomic transitions.
        :param codec: Signed-token codec.
        :param hasher: Credential verifier.
        :param rate_guard: Applies the ``auth`` rule to login attempts.
        :param lockout: Progressive lockout thresholds.
        :param token_cfg: Access/Refresh lifetimes.
        """
        super().__init__(clock=clock, ctx=ctx)
        self.users = users
        self.refresh_store = refresh_store
        self.codec = codec
        self.hasher = hasher
        self.rate_guard = rate_guard
        self.lockout = lockout or LockoutPolicy()
        self.cfg = token_cfg or AuthTokenConfig()
        self._dummy_hash: str | None = None

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Authenticate credentials and open a new token family.

        :param dto: Login input.
        :returns: Access/Refresh token pair.
        :raises RateLimitExceededError: When the client exhausted the ``auth`` rule.
        :raises AccountLockedError: While locked, whatever the password.
        :raises InvalidCredentialsError: Unknown email, wrong password or inactive account.
        """
        if self.rate_guard is not None and dto.client_ip:
            self.rate_guard.hit("auth", dto.client_ip)

        now = self.clock.now()
        account = self.users.get_by_email(dto.email)
        if account is None:
            self.hasher.verify(dto.password, self._timing_hash())
            raise InvalidCredentialsError()

        # Locked accounts are rejected before the password is looked at
        if self.lockout.is_locked(account, now):
            remaining = self.lockout.remaining_seconds(account, now)
            self.audit(
                "login.rejected_locked",
                user_id=account.id,
                remaining_seconds=remaining,
                lockout_until=account.lockout_until,
            )
            raise AccountLockedError(remaining)

        if not self.hasher.verify(dto.password, account.password_hash):
            outcome = self.users.register_failed_login(account.id, now, self.lockout)
            if outcome is not None and outcome.locked:
                self.audit(
                    "account.locked",
                    user_id=account.id,
                    failed_attempts=outcome.account.failed_login_attempts,
                    lockout_count=outcome.account.lockout_count,
                    lockout_until=outcome.account.lockout_until,
                )
            raise InvalidCredentialsError()

        if not account.can_login:
            raise InvalidCredentialsError()

        # Only succeeds while the verified hash is still the stored one
        current = self.users.register_successful_login(
            account.id, now, expected_hash=account.password_hash
        )
        if current is None:
            raise InvalidCredentialsError()
        account = current
        if self.hasher.needs_rehash(account.password_hash):
            self.users.change_password(
                account.id, self.hasher.hash(dto.password), expected_hash=account.password_hash
            )

        issued = self._issue_instant()
        token_id = self.refresh_store.new_token_id()
        raw = self._encode_refresh(account.id, token_id, issued)
        refresh = RefreshToken.issue_root(
            token_id=token_id,
            user_id=account.id,
            value=raw,
            issued_at=issued,
            validity=self.cfg.refresh_ttl,
            device_info=dto.device_info,
        )
        self.refresh_store.save(refresh)
        return self._session(account, refresh, raw, issued)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> SessionOut:
        """
        Rotate a refresh token and emit a new token pair.

        Security
        --------
        - Unknown, malformed and badly signed tokens are indistinguishable.
        - Rotation is a compare-and-swap in the store: of two concurrent
          requests with the same token exactly one gets a child, the other
          is handled as reuse.
        - Reuse revokes every ROTATED/ACTIVE member of the family.
        """
        claims = self._verified(dto.refresh_token)
        if not isinstance(claims, RefreshClaims):
            raise TokenInvalidError("wrong_purpose")

        stored = self.refresh_store.find_by_hash(token_digest(dto.refresh_token))
        if stored is None or stored.token_id != claims.token_id or stored.user_id != claims.subject:
            raise TokenInvalidError("unknown_token")

        if stored.status in _REUSED_STATUSES:
            self._reuse_detected(stored)
        now = self.clock.now()
        if stored.status is RefreshTokenStatus.EXPIRED or stored.is_expired(now):
            raise TokenExpiredError()

        account = self.users.get(stored.user_id)
        if account is None or not account.can_login:
            raise TokenInvalidError("inactive_account")

        issued = self._issue_instant()
        child_id = self.refresh_store.new_token_id()
        raw = self._encode_refresh(account.id, child_id, issued)
        child = RefreshToken.rotate_from(
            stored,
            token_id=child_id,
            value=raw,
            issued_at=issued,
            validity=self.cfg.refresh_ttl,
            device_info=dto.device_info,
        )
        if not self.refresh_store.rotate(stored.token_id, child):
            # Another request consumed the parent first
            self._reuse_detected(stored)
        return self._session(account, child, raw, issued)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> LogoutOut:
        """
        Revoke the session of ``dto.refresh_token``, or every session of its user.

        Expired refresh tokens are still accepted here so that clients can
        always clean up.
        """
        result = self.codec.verify(dto.refresh_token)
        if result.valid:
            claims = result.claims
        elif result.reason is TokenRejection.EXPIRED:
            # signature already checked by verify()
            claims = self.codec.decode_without_verifying(dto.refresh_token)
        else:
            raise TokenInvalidError(result.reason.value if result.reason else None)
        if not isinstance(claims, RefreshClaims):
            raise TokenInvalidError("wrong_purpose")

        stored = self.refresh_store.find_by_hash(token_digest(dto.refresh_token))
        if stored is None or stored.token_id != claims.token_id:
            raise TokenInvalidError("unknown_token")

        if dto.all_sessions:
            revoked = self.refresh_store.revoke_all_by_user(stored.user_id)
            self.audit("sessions.revoked_all", level=logging.INFO, user_id=stored.user_id, revoked=revoked)
            return LogoutOut(revoked=revoked)
        return LogoutOut(revoked=int(self.refresh_store.mark_revoked(stored.token_id)))

    # ------------------------------------------------------------------ #
    # Access tokens
    # ------------------------------------------------------------------ #

    def authenticate(self, access_token: str) -> AccessClaims:
        """
        Validate a bearer access token (signature, purpose and expiry).

        :raises TokenExpiredError: Past its ``exp``.
        :raises TokenInvalidError: Any other failure, including other purposes.
        """
        claims = self._verified(access_token)
        if not isinstance(claims, AccessClaims):
            raise TokenInvalidError("wrong_purpose")
        return claims

    def whoami(self, access_token: str) -> AccountOut:
        """Return the account behind a valid access token."""
        claims = self.authenticate(access_token)
        account = self.users.get(claims.subject)
        if account is None or not account.can_login:
            raise TokenInvalidError("inactive_account")
        return AccountOut(
            id=account.id,
            email=account.email,
            status=account.status.value,
            last_login_at=account.last_login_at,
        )

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _verified(self, token: str) -> TokenClaims:
        result = self.codec.verify(token)
        if result.reason is TokenRejection.EXPIRED:
            raise TokenExpiredError()
        if not result.valid or result.claims is None:
            raise TokenInvalidError(result.reason.value if result.reason else None)
        return result.claims

    def _reuse_detected(self, stored: RefreshToken) -> None:
        """Revoke the family of a replayed token, audit it, and raise."""
        root_id = self.refresh_store.find_family_root_id(stored.token_id) or stored.family_root_id
        revoked = self.refresh_store.revoke_family(root_id)
        self.audit(
            "refresh.reuse_detected",
            level=logging.ERROR,
            user_id=stored.user_id,
            token_id=stored.token_id,
            family_root_id=root_id,
            revoked=revoked,
        )
        raise TokenReuseDetectedError(token_id=stored.token_id, family_root_id=root_id, revoked=revoked)

    def _issue_instant(self) -> datetime:
        # Signed tokens carry whole seconds
        return self.clock.now().replace(microsecond=0)

    def _timing_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash(_TIMING_DUMMY_PASSWORD)
        return self._dummy_hash

    def _encode_refresh(self, user_id: str, token_id: str, issued: datetime) -> str:
        return self.codec.issue(
            RefreshClaims(subject=user_id, token_id=token_id), self.cfg.refresh_ttl, now=issued
        )

    def _session(
        self, account: UserAccount, refresh: RefreshToken, refresh_value: str, issued: datetime
    ) -> SessionOut:
        access = AccessToken.create(
            value=self.codec.issue(
                AccessClaims(subject=account.id, email=account.email), self.cfg.access_ttl, now=issued
            ),
            user_id=account.id,
            issued_at=issued,
            validity=self.cfg.access_ttl,
        )
        return SessionOut(
            access_token=access.value,
            refresh_token=refresh_value,
            access_expires_at=access.expires_at,
            refresh_expires_at=refresh.expires_at,
            expires_in=access.remaining_seconds(issued),
            user_id=account.id,
            refresh_token_id=refresh.token_id,
        )
