from authcore.services.password_reset.dto import (
    GENERIC_RESET_MESSAGE,
    ConfirmResetIn,
    ConfirmResetOut,
    RequestResetIn,
    RequestResetOut,
)
from authcore.services.password_reset.service import PasswordResetService

__all__ = [
    "PasswordResetService",
    "RequestResetIn",
    "RequestResetOut",
    "ConfirmResetIn",
    "ConfirmResetOut",
    "GENERIC_RESET_MESSAGE",
]
