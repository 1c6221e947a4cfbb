"""Service layer public API.

This package exposes the session use cases so that callers can import from
:mod:`authcore.services` without knowing the internal structure.

Re-exports
----------
- Base primitives (from ``authcore.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Use cases
    * :class:`AuthService` (login / refresh / logout / authenticate)
    * :class:`PasswordResetService` (request / confirm)
    * :class:`RegistrationService` (register / verify email)
    * :class:`SessionMaintenanceService` (purge)
"""

from __future__ import annotations

from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services.auth import AuthService
from authcore.services.maintenance import SessionMaintenanceService
from authcore.services.password_reset import PasswordResetService
from authcore.services.registration import RegistrationService

__all__ = [
    "BaseService",
    "ServiceContext",
    "AuthService",
    "PasswordResetService",
    "RegistrationService",
    "SessionMaintenanceService",
]
