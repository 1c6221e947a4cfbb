from authcore.services.auth.dto import (
    AccountOut,
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    LogoutOut,
    RefreshIn,
    SessionOut,
)
from authcore.services.auth.service import AuthService

__all__ = [
    "AuthService",
    "AuthTokenConfig",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "SessionOut",
    "LogoutOut",
    "AccountOut",
]
