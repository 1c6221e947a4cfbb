"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutSchema,
    PasswordResetConfirmSchema,
    PasswordResetRequestSchema,
    RefreshSchema,
    RegisterSchema,
    RegistrationResponseSchema,
    SessionResponseSchema,
    VerifyEmailSchema,
    WhoAmISchema,
)

__all__ = [
    "LoginSchema",
    "RefreshSchema",
    "LogoutSchema",
    "PasswordResetRequestSchema",
    "PasswordResetConfirmSchema",
    "RegisterSchema",
    "VerifyEmailSchema",
    "RegistrationResponseSchema",
    "SessionResponseSchema",
    "WhoAmISchema",
]
