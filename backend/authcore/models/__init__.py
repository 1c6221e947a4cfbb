from authcore.models.password_reset_token import PasswordResetTokenRecord
from authcore.models.refresh_token import RefreshTokenRecord
from authcore.models.user import User

__all__ = ["User", "RefreshTokenRecord", "PasswordResetTokenRecord"]
