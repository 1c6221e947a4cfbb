"""Base class and request context shared by application services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from authcore.core import errors as api_errors
from authcore.services._shared.errors import (
    AccountLockedError,
    AuthError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    PasswordMismatchError,
    RateLimitExceededError,
    ServiceError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenInvalidError,
    WeakCredentialError,
)
from authcore.services._shared.ports.clock import Clock, SystemClock

audit_log = logging.getLogger("authcore.audit")


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param request_id: Correlation id for logging/tracing.
    :param client_ip: Remote address as seen after proxy handling.
    """

    request_id: str | None = None
    client_ip: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Hold the injected clock; services never read the system time directly.
    * Centralize error translation and audit logging.
    * Keep services thin, orchestration-only, no web/ORM leakage.
    """

    def __init__(self, *, clock: Clock | None = None, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param clock: Time source; defaults to the system clock.
        :param ctx: Optional request-scoped context.
        """
        self.clock = clock or SystemClock()
        self.ctx = ctx or ServiceContext()

    # ------------------------------ Audit ------------------------------------

    def audit(self, event: str, *, level: int = logging.WARNING, **fields: object) -> None:
        """
        Record a security event on the ``authcore.audit`` logger.

        :param event: Dotted event name (e.g. ``refresh.reuse_detected``).
        :param fields: Structured ``extra`` fields; never raw secrets.
        """
        audit_log.log(level, event, extra={"event": event, **fields})

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AccountLockedError):
            # → 423 Locked
            return api_errors.Locked(str(exc), retry_after=exc.remaining_seconds)

        if isinstance(exc, RateLimitExceededError):
            # → 429 Too Many Requests
            return api_errors.TooManyRequests(str(exc), retry_after=exc.retry_after_seconds)

        if isinstance(exc, (InvalidCredentialsError, TokenExpiredError)):
            # → 401 Unauthorized
            return api_errors.Unauthorized(str(exc), code=exc.code)

        if isinstance(exc, TokenInvalidError):
            # Revoked/reused tokens collapse into the generic invalid-token answer
            return api_errors.Unauthorized(
                TokenInvalidError.public_message, code=TokenInvalidError.code
            )

        if isinstance(exc, WeakCredentialError):
            # → 422 Unprocessable Entity
            return api_errors.APIError(
                message=str(exc),
                status_code=422,
                code=exc.code,
                details={"missing_requirements": exc.missing},
            )

        if isinstance(exc, PasswordMismatchError):
            return api_errors.APIError(message=str(exc), status_code=422, code=exc.code)

        if isinstance(exc, TokenAlreadyUsedError):
            return api_errors.APIError(message=str(exc), status_code=400, code=exc.code)

        if isinstance(exc, AuthError):
            return api_errors.Unauthorized(str(exc), code=exc.code)

        if isinstance(exc, ConflictError):
            # → 409 Conflict
            return api_errors.Conflict(str(exc))

        if isinstance(exc, NotFoundError):
            # → 404 Not Found
            return api_errors.APIError(message=str(exc), status_code=404, code="not_found")

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
