# authcore/services/registration/service.py
"""
RegistrationService
===================

Self-service sign-up:

- Creates the account in ``PENDING_VERIFICATION`` with a hashed password.
- Sends a signed email-verification token through the token sender.
- Verifying the token moves the account to ``ACTIVE``; only then can it log in.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.claims import EmailVerificationClaims
from authcore.services._shared.errors import (
    ConflictError,
    PasswordMismatchError,
    TokenExpiredError,
    TokenInvalidError,
)
from authcore.services._shared.policies.password import validate_password_strength
from authcore.services._shared.ports import (
    Clock,
    DuplicateEmailError,
    PasswordHasher,
    ResetMessage,
    ResetTokenSender,
    TokenCodec,
    TokenRejection,
    UserAccount,
    UserAccountStore,
    UserStatus,
)
from authcore.services._shared.ports.user_store import normalize_email
from authcore.services._shared.rate_limit import RateLimitGuard
from authcore.services.registration.dto import (
    RegisterIn,
    RegisterOut,
    VerifyEmailIn,
    VerifyEmailOut,
)

EMAIL_VERIFICATION_TOKEN_VALIDITY = timedelta(hours=24)
VERIFICATION_MESSAGE_KIND = "email_verification"


class RegistrationService(BaseService):
    """
    Orchestrates the registration process (sign-up / email verification).
    """

    def __init__(
        self,
        *,
        users: UserAccountStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        sender: ResetTokenSender,
        rate_guard: RateLimitGuard | None = None,
        verification_ttl: timedelta = EMAIL_VERIFICATION_TOKEN_VALIDITY,
        expose_token: bool = False,
        clock: Clock | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(clock=clock, ctx=ctx)
        self.users = users
        self.codec = codec
        self.hasher = hasher
        self.sender = sender
        self.rate_guard = rate_guard
        self.verification_ttl = verification_ttl
        self.expose_token = expose_token

    def register(self, dto: RegisterIn) -> RegisterOut:
        """
        Create a pending account and send its verification token.

        :param dto: Registration input.
        :returns: The created account summary.
        :raises RateLimitExceededError: When the client exhausted the ``register`` rule.
        :raises PasswordMismatchError: Confirmation differs from the password.
        :raises WeakCredentialError: Password violates the strength policy.
        :raises ConflictError: When the email is already registered.
        """
        if self.rate_guard is not None and dto.client_ip:
            self.rate_guard.hit("register", dto.client_ip)
        if dto.password != dto.confirm_password:
            raise PasswordMismatchError()
        validate_password_strength(dto.password)

        email = normalize_email(dto.email)
        if self.users.get_by_email(email) is not None:
            raise ConflictError("User", "email already registered")
        try:
            account = self.users.add(
                UserAccount(
                    id="",
                    email=email,
                    password_hash=self.hasher.hash(dto.password),
                    status=UserStatus.PENDING_VERIFICATION,
                )
            )
        except DuplicateEmailError as exc:
            # Lost a race with a concurrent sign-up for the same address
            raise ConflictError("User", "email already registered") from exc

        now = self.clock.now()
        issued = now.replace(microsecond=0)
        value = self.codec.issue(
            EmailVerificationClaims(subject=account.id, email=account.email),
            self.verification_ttl,
            now=issued,
        )
        self.sender.send(
            ResetMessage(
                user_id=account.id,
                email=account.email,
                token=value,
                expires_at=issued + self.verification_ttl,
                kind=VERIFICATION_MESSAGE_KIND,
            )
        )
        self.audit("user.registered", level=logging.INFO, user_id=account.id)
        return RegisterOut(
            user_id=account.id,
            email=account.email,
            status=account.status.value,
            verification_token=value if self.expose_token else None,
        )

    def verify_email(self, dto: VerifyEmailIn) -> VerifyEmailOut:
        """
        Activate the account a verification token was issued for.

        :raises TokenExpiredError: Token past its expiry.
        :raises TokenInvalidError: Malformed, foreign-purpose or stale token,
            or an account that is neither pending nor active.
        :raises ConflictError: When the email was already verified.
        """
        result = self.codec.verify(dto.token)
        if result.reason is TokenRejection.EXPIRED:
            raise TokenExpiredError()
        if not result.valid:
            raise TokenInvalidError(result.reason.value if result.reason else None)
        claims = result.claims
        if not isinstance(claims, EmailVerificationClaims):
            raise TokenInvalidError("wrong_purpose")

        account = self.users.get(claims.subject)
        if account is None or account.email != claims.email:
            raise TokenInvalidError("unknown_account")
        if account.status is UserStatus.ACTIVE:
            raise ConflictError("User", "email already verified")
        if account.status is not UserStatus.PENDING_VERIFICATION:
            raise TokenInvalidError("inactive_account")
        if not self.users.activate(account.id):
            raise ConflictError("User", "email already verified")

        self.audit("user.email_verified", level=logging.INFO, user_id=account.id)
        return VerifyEmailOut(
            user_id=account.id, email=account.email, status=UserStatus.ACTIVE.value
        )
