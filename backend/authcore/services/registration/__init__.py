from authcore.services.registration.dto import (
    REGISTERED_MESSAGE,
    VERIFIED_MESSAGE,
    RegisterIn,
    RegisterOut,
    VerifyEmailIn,
    VerifyEmailOut,
)
from authcore.services.registration.service import RegistrationService

__all__ = [
    "RegistrationService",
    "RegisterIn",
    "RegisterOut",
    "VerifyEmailIn",
    "VerifyEmailOut",
    "REGISTERED_MESSAGE",
    "VERIFIED_MESSAGE",
]
