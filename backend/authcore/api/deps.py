"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Flask, Response, current_app, g, jsonify, request

from authcore.core.errors import Unauthorized
from authcore.core.logger import ensure_request_id
from authcore.core.wiring import AuthComponents, get_components
from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.errors import RateLimitExceededError
from authcore.services._shared.ports import RateLimitResult

F = TypeVar("F", bound=Callable[..., Any])

GLOBAL_RULE = "global"


def components() -> AuthComponents:
    """Return the session components bound to the current application."""

    return get_components(current_app)


def client_ip() -> str:
    """Return the caller address (already rewritten by ProxyFix when enabled)."""

    return request.remote_addr or "unknown"


def service_context() -> ServiceContext:
    """Build the request-scoped context handed to services."""

    return ServiceContext(
        request_id=ensure_request_id(),
        client_ip=client_ip(),
    )


def bearer_token() -> str:
    """Extract the token of an ``Authorization: Bearer <token>`` header."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Missing bearer token", code="missing_token")
    return token.strip()


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def set_rate_limit_headers(response: Response, result: RateLimitResult) -> None:
    """Copy a limiter decision onto ``X-RateLimit-*`` response headers."""

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(max(result.remaining, 0))
    response.headers["X-RateLimit-Reset"] = str(int(result.reset_at.timestamp()))


def init_global_rate_limit(app: Flask) -> None:
    """Apply the ``global`` rule to every API request, keyed by client IP.

    Disabled when ``RATE_LIMIT_GLOBAL_ENABLED`` is false. Requests over the
    limit are answered with 429 before reaching the view.
    """

    if not app.config.get("RATE_LIMIT_GLOBAL_ENABLED", True):
        return
    api_prefix = app.config.get("API_BASE_PREFIX", "/api")

    @app.before_request
    def _enforce_global_limit() -> None:
        if not request.path.startswith(api_prefix):
            return
        guard = components().rate_guard
        try:
            g.rate_limit = guard.hit(GLOBAL_RULE, client_ip())
        except RateLimitExceededError as exc:
            raise BaseService().translate_exceptions(exc) from exc

    @app.after_request
    def _inject_rate_limit_headers(response: Response) -> Response:
        result = g.pop("rate_limit", None)
        if result is not None:
            set_rate_limit_headers(response, result)
        return response


__all__ = [
    "bearer_token",
    "client_ip",
    "components",
    "init_global_rate_limit",
    "json_response",
    "service_context",
    "set_rate_limit_headers",
    "timing",
]
