"""SQLAlchemy implementations of the service-layer store ports."""

from authcore.repositories.password_reset_token import PasswordResetTokenRepository
from authcore.repositories.refresh_token import RefreshTokenRepository
from authcore.repositories.user import UserRepository

__all__ = ["UserRepository", "RefreshTokenRepository", "PasswordResetTokenRepository"]
