# authcore/services/password_reset/service.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta

from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.claims import PasswordResetClaims
from authcore.services._shared.errors import (
    PasswordMismatchError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from authcore.services._shared.policies.password import validate_password_strength
from authcore.services._shared.ports import (
    Clock,
    PasswordHasher,
    RefreshTokenStore,
    ResetMessage,
    ResetTokenSender,
    ResetTokenStore,
    TokenCodec,
    TokenRejection,
    UserAccountStore,
)
from authcore.services._shared.ports.user_store import normalize_email
from authcore.services._shared.rate_limit import RateLimitGuard
from authcore.services._shared.tokens import (
    PASSWORD_RESET_TOKEN_VALIDITY,
    PasswordResetToken,
    PasswordResetTokenStatus,
    token_digest,
)
from authcore.services.password_reset.dto import (
    GENERIC_RESET_MESSAGE,
    RESET_COMPLETED_MESSAGE,
    ConfirmResetIn,
    ConfirmResetOut,
    RequestResetIn,
    RequestResetOut,
)
from authcore.uow.base import StoreUnitOfWork, UnitOfWork

log = logging.getLogger(__name__)


class PasswordResetService(BaseService):
    """
    Password reset lifecycle (request / confirm).

    A request never reveals whether the email belongs to an account: the
    response is the same generic message in every case. Each new token
    revokes the user's earlier ACTIVE ones. Confirmation consumes the token
    with a compare-and-swap, changes the password and revokes every refresh
    token of the user.
    """

    def __init__(
        self,
        *,
        users: UserAccountStore,
        reset_store: ResetTokenStore,
        refresh_store: RefreshTokenStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        sender: ResetTokenSender,
        rate_guard: RateLimitGuard | None = None,
        reset_ttl: timedelta = PASSWORD_RESET_TOKEN_VALIDITY,
        expose_token: bool = False,
        uow: Callable[[], UnitOfWork] | None = None,
        clock: Clock | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(clock=clock, ctx=ctx)
        self.users = users
        self.reset_store = reset_store
        self.refresh_store = refresh_store
        self.codec = codec
        self.hasher = hasher
        self.sender = sender
        self.rate_guard = rate_guard
        self.reset_ttl = reset_ttl
        self.expose_token = expose_token
        self.uow = uow or self._store_uow

    def _store_uow(self) -> UnitOfWork:
        return StoreUnitOfWork(
            users=self.users, refresh_store=self.refresh_store, reset_store=self.reset_store
        )

    # ------------------------------------------------------------------ #
    # Request
    # ------------------------------------------------------------------ #

    def request_reset(self, dto: RequestResetIn) -> RequestResetOut:
        """
        Issue a reset token for ``dto.email`` if the account may reset.

        :returns: The generic message (plus the raw token when exposure is on
            and a token was actually issued).
        :raises RateLimitExceededError: Per client IP or per email address.
        """
        if self.rate_guard is not None:
            if dto.client_ip:
                self.rate_guard.hit("password_reset", dto.client_ip)
            self.rate_guard.hit("password_reset", f"email:{normalize_email(dto.email)}")

        account = self.users.get_by_email(dto.email)
        if account is None or not account.can_reset_password:
            log.debug(
                "password_reset.ignored",
                extra={"reason": "unknown_account" if account is None else "status"},
            )
            return RequestResetOut(message=GENERIC_RESET_MESSAGE)

        now = self.clock.now()
        superseded = self.reset_store.revoke_all_by_user(account.id, now)

        issued = now.replace(microsecond=0)
        token_id = self.reset_store.new_token_id()
        value = self.codec.issue(
            PasswordResetClaims(subject=account.id, token_id=token_id), self.reset_ttl, now=issued
        )
        token = PasswordResetToken.issue(
            token_id=token_id,
            user_id=account.id,
            email=account.email,
            value=value,
            issued_at=issued,
            validity=self.reset_ttl,
        )
        self.reset_store.save(token)
        self.sender.send(
            ResetMessage(user_id=account.id, email=account.email, token=value, expires_at=token.expires_at)
        )
        self.audit(
            "password_reset.requested",
            level=logging.INFO,
            user_id=account.id,
            token_id=token_id,
            revoked=superseded,
        )
        return RequestResetOut(message=GENERIC_RESET_MESSAGE, token=value if self.expose_token else None)

    # ------------------------------------------------------------------ #
    # Confirm
    # ------------------------------------------------------------------ #

    def confirm_reset(self, dto: ConfirmResetIn) -> ConfirmResetOut:
        """
        Consume a reset token and set the new password.

        Consuming the token, replacing the hash and revoking the refresh
        tokens happen in one unit of work: on failure the token stays usable.

        :raises PasswordMismatchError: Confirmation differs from the new password.
        :raises WeakCredentialError: New password fails the strength policy.
        :raises TokenExpiredError: Token past its expiry.
        :raises TokenInvalidError: Malformed, foreign-purpose, unknown or revoked token.
        :raises TokenAlreadyUsedError: Token consumed before (or concurrently).
        """
        if dto.new_password != dto.confirm_password:
            raise PasswordMismatchError()
        validate_password_strength(dto.new_password)

        result = self.codec.verify(dto.token)
        if result.reason is TokenRejection.EXPIRED:
            raise TokenExpiredError()
        if not result.valid:
            raise TokenInvalidError(result.reason.value if result.reason else None)
        claims = result.claims
        if not isinstance(claims, PasswordResetClaims):
            raise TokenInvalidError("wrong_purpose")

        stored = self.reset_store.find_by_hash(token_digest(dto.token))
        if stored is None or stored.token_id != claims.token_id or stored.user_id != claims.subject:
            raise TokenInvalidError("unknown_token")
        if stored.status is PasswordResetTokenStatus.USED:
            raise TokenAlreadyUsedError()
        if stored.status is PasswordResetTokenStatus.REVOKED:
            raise TokenRevokedError()

        now = self.clock.now()
        if stored.is_expired(now):
            raise TokenExpiredError()

        account = self.users.get(stored.user_id)
        if account is None or not account.can_reset_password:
            raise TokenInvalidError("inactive_account")

        new_hash = self.hasher.hash(dto.new_password)
        with self.uow() as uow:
            if not uow.reset_store.mark_used(stored.token_id, now):
                raise TokenAlreadyUsedError()
            if not uow.users.change_password(
                account.id, new_hash, changed_at=now, clear_lockout=True
            ):
                raise TokenInvalidError("inactive_account")
            revoked = uow.refresh_store.revoke_all_by_user(account.id)
        self.audit(
            "password_reset.completed",
            level=logging.INFO,
            user_id=account.id,
            token_id=stored.token_id,
            revoked=revoked,
        )
        return ConfirmResetOut(message=RESET_COMPLETED_MESSAGE, revoked_sessions=revoked)
