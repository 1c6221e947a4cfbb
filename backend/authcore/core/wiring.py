"""Construction of the session components from application config.

The assembled :class:`AuthComponents` lives in ``app.extensions["authcore"]``
and hands out request-scoped services.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import cast

from flask import Flask, current_app

from authcore.infra.jwt import codec_from_config
from authcore.infra.security import WerkzeugPasswordHasher
from authcore.services._shared.base import ServiceContext
from authcore.services._shared.policies.lockout import LockoutPolicy
from authcore.services._shared.ports import (
    Clock,
    InMemoryRateLimiter,
    InMemoryRefreshTokenStore,
    InMemoryResetTokenSender,
    InMemoryResetTokenStore,
    InMemoryUserStore,
    LoggingResetTokenSender,
    PasswordHasher,
    RateLimiter,
    RefreshTokenStore,
    ResetTokenSender,
    ResetTokenStore,
    SystemClock,
    TokenCodec,
    UserAccountStore,
)
from authcore.services._shared.rate_limit import RateLimitGuard
from authcore.services.auth import AuthService, AuthTokenConfig
from authcore.services.maintenance import SessionMaintenanceService
from authcore.services.password_reset import PasswordResetService
from authcore.services.registration import RegistrationService
from authcore.uow import StoreUnitOfWork, UnitOfWork

EXTENSION_KEY = "authcore"


@dataclass(slots=True)
class AuthComponents:
    """Long-lived collaborators shared by every request."""

    clock: Clock
    users: UserAccountStore
    refresh_store: RefreshTokenStore
    reset_store: ResetTokenStore
    rate_limiter: RateLimiter
    rate_guard: RateLimitGuard
    codec: TokenCodec
    hasher: PasswordHasher
    sender: ResetTokenSender
    lockout: LockoutPolicy
    token_cfg: AuthTokenConfig
    reset_ttl: timedelta
    verification_ttl: timedelta
    uow_factory: Callable[[], UnitOfWork]
    expose_reset_token: bool = False
    expose_verification_token: bool = False

    def auth_service(self, ctx: ServiceContext | None = None) -> AuthService:
        return AuthService(
            users=self.users,
            refresh_store=self.refresh_store,
            codec=self.codec,
            hasher=self.hasher,
            rate_guard=self.rate_guard,
            lockout=self.lockout,
            token_cfg=self.token_cfg,
            clock=self.clock,
            ctx=ctx,
        )

    def password_reset_service(self, ctx: ServiceContext | None = None) -> PasswordResetService:
        return PasswordResetService(
            users=self.users,
            reset_store=self.reset_store,
            refresh_store=self.refresh_store,
            codec=self.codec,
            hasher=self.hasher,
            sender=self.sender,
            rate_guard=self.rate_guard,
            reset_ttl=self.reset_ttl,
            expose_token=self.expose_reset_token,
            uow=self.uow_factory,
            clock=self.clock,
            ctx=ctx,
        )

    def registration_service(self, ctx: ServiceContext | None = None) -> RegistrationService:
        return RegistrationService(
            users=self.users,
            codec=self.codec,
            hasher=self.hasher,
            sender=self.sender,
            rate_guard=self.rate_guard,
            verification_ttl=self.verification_ttl,
            expose_token=self.expose_verification_token,
            clock=self.clock,
            ctx=ctx,
        )

    def maintenance_service(self) -> SessionMaintenanceService:
        return SessionMaintenanceService(
            refresh_store=self.refresh_store,
            reset_store=self.reset_store,
            rate_limiter=self.rate_limiter,
            clock=self.clock,
        )


def _stores(
    backend: str,
) -> tuple[UserAccountStore, RefreshTokenStore, ResetTokenStore, Callable[[], UnitOfWork]]:
    if backend == "memory":
        users = InMemoryUserStore()
        refresh_store = InMemoryRefreshTokenStore()
        reset_store = InMemoryResetTokenStore()
        uow = partial(StoreUnitOfWork, users=users, refresh_store=refresh_store, reset_store=reset_store)
        return users, refresh_store, reset_store, uow
    if backend == "sqlalchemy":
        from authcore.repositories import (
            PasswordResetTokenRepository,
            RefreshTokenRepository,
            UserRepository,
        )
        from authcore.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

        return (
            UserRepository(),
            RefreshTokenRepository(),
            PasswordResetTokenRepository(),
            SQLAlchemyUnitOfWork,
        )
    raise RuntimeError(f"Unknown SESSION_STORE_BACKEND: {backend!r}")


def _rate_limiter(backend: str, clock: Clock) -> RateLimiter:
    if backend == "memory":
        return InMemoryRateLimiter(clock)
    if backend == "redis":
        from authcore.core.extensions import get_redis
        from authcore.infra.redis import RedisRateLimiter

        return RedisRateLimiter(r=get_redis(), clock=clock)
    raise RuntimeError(f"Unknown RATE_LIMIT_BACKEND: {backend!r}")


def build_components(app: Flask, *, clock: Clock | None = None) -> AuthComponents:
    """Assemble stores, adapters and policies from ``app.config``."""
    cfg = app.config
    clock = clock or SystemClock()
    users, refresh_store, reset_store, uow_factory = _stores(cfg.get("SESSION_STORE_BACKEND", "sqlalchemy"))
    limiter = _rate_limiter(cfg.get("RATE_LIMIT_BACKEND", "memory"), clock)
    sender: ResetTokenSender = (
        InMemoryResetTokenSender()
        if cfg.get("RESET_TOKEN_SENDER", "log") == "memory"
        else LoggingResetTokenSender()
    )
    return AuthComponents(
        clock=clock,
        users=users,
        refresh_store=refresh_store,
        reset_store=reset_store,
        rate_limiter=limiter,
        rate_guard=RateLimitGuard.from_config(limiter, cfg.get("RATE_LIMITS", {})),
        codec=codec_from_config(cfg, clock),
        hasher=WerkzeugPasswordHasher(cfg.get("PASSWORD_HASH_METHOD", "scrypt")),
        sender=sender,
        lockout=LockoutPolicy(
            max_failed_attempts=int(cfg.get("LOCKOUT_MAX_FAILED_ATTEMPTS", 5)),
            base_duration=timedelta(seconds=int(cfg.get("LOCKOUT_BASE_SECONDS", 900))),
            max_duration=timedelta(seconds=int(cfg.get("LOCKOUT_MAX_SECONDS", 3600))),
        ),
        token_cfg=AuthTokenConfig(
            access_ttl=timedelta(seconds=int(cfg.get("ACCESS_TOKEN_TTL_SECONDS", 18000))),
            refresh_ttl=timedelta(seconds=int(cfg.get("REFRESH_TOKEN_TTL_SECONDS", 259200))),
        ),
        reset_ttl=timedelta(seconds=int(cfg.get("PASSWORD_RESET_TTL_SECONDS", 1800))),
        verification_ttl=timedelta(seconds=int(cfg.get("EMAIL_VERIFICATION_TTL_SECONDS", 86400))),
        uow_factory=uow_factory,
        expose_reset_token=bool(cfg.get("EXPOSE_RESET_TOKEN", False)),
        expose_verification_token=bool(cfg.get("EXPOSE_VERIFICATION_TOKEN", False)),
    )


def init_app(app: Flask, *, clock: Clock | None = None) -> None:
    """Build the components and register them on ``app``."""
    app.extensions[EXTENSION_KEY] = build_components(app, clock=clock)


def get_components(app: Flask | None = None) -> AuthComponents:
    """Return the components of ``app`` (default: the current app)."""
    target = app or current_app
    try:
        return cast(AuthComponents, target.extensions[EXTENSION_KEY])
    except KeyError:
        raise RuntimeError("Session components are not initialized. Call wiring.init_app().") from None
