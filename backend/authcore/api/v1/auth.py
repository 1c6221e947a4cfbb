"""Session endpoints backed by the auth and password reset services."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from flask import Blueprint, request

from authcore.api.deps import (
    bearer_token,
    client_ip,
    components,
    json_response,
    service_context,
    timing,
)
from authcore.schemas import (
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
from authcore.services._shared.base import BaseService
from authcore.services._shared.errors import ServiceError
from authcore.services.auth import LoginIn, LogoutIn, RefreshIn
from authcore.services.password_reset import ConfirmResetIn, RequestResetIn
from authcore.services.registration import RegisterIn, VerifyEmailIn

T = TypeVar("T")

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
reset_request_schema = PasswordResetRequestSchema()
reset_confirm_schema = PasswordResetConfirmSchema()
session_schema = SessionResponseSchema()
whoami_schema = WhoAmISchema()
register_schema = RegisterSchema()
verify_email_schema = VerifyEmailSchema()
registration_schema = RegistrationResponseSchema()


def _run(service: BaseService, call: Callable[[], T]) -> T:
    """Invoke a use case, re-raising service errors as API errors."""
    try:
        return call()
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc


def _payload() -> dict[str, Any]:
    return request.get_json(silent=True) or {}


@bp.post("/register")
@timing
def register():
    """Create a pending account and send its verification token."""

    data = register_schema.load(_payload())
    service = components().registration_service(service_context())
    dto = RegisterIn(
        email=data["email"],
        password=data["password"],
        confirm_password=data["confirm_password"],
        client_ip=client_ip(),
    )
    result = _run(service, lambda: service.register(dto))
    body = registration_schema.dump(result)
    if result.verification_token is not None:
        body["verification_token"] = result.verification_token
    return json_response({"data": body}, status=201)


@bp.post("/verify-email")
@timing
def verify_email():
    """Activate the account behind an email-verification token."""

    data = verify_email_schema.load(_payload())
    service = components().registration_service(service_context())
    result = _run(service, lambda: service.verify_email(VerifyEmailIn(token=data["token"])))
    return json_response({"data": registration_schema.dump(result)})


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and open a new session."""

    data = login_schema.load(_payload())
    service = components().auth_service(service_context())
    dto = LoginIn(
        email=data["email"],
        password=data["password"],
        client_ip=client_ip(),
        device_info=data.get("device_info") or request.headers.get("User-Agent"),
    )
    session = _run(service, lambda: service.login(dto))
    return json_response({"data": session_schema.dump(session)})


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token and return a new token pair."""

    data = refresh_schema.load(_payload())
    service = components().auth_service(service_context())
    dto = RefreshIn(refresh_token=data["refresh_token"], device_info=data.get("device_info"))
    session = _run(service, lambda: service.refresh(dto))
    return json_response({"data": session_schema.dump(session)})


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented session, or all sessions of its user."""

    data = logout_schema.load(_payload())
    service = components().auth_service(service_context())
    dto = LogoutIn(refresh_token=data["refresh_token"], all_sessions=data["all_sessions"])
    result = _run(service, lambda: service.logout(dto))
    return json_response({"data": {"revoked": result.revoked}})


@bp.get("/me")
@timing
def whoami():
    """Return the account behind the bearer access token."""

    token = bearer_token()
    service = components().auth_service(service_context())
    account = _run(service, lambda: service.whoami(token))
    return json_response({"data": whoami_schema.dump(account)})


@bp.post("/password-reset/request")
@timing
def request_password_reset():
    """Issue a reset token; the answer is identical for unknown emails."""

    data = reset_request_schema.load(_payload())
    service = components().password_reset_service(service_context())
    dto = RequestResetIn(email=data["email"], client_ip=client_ip())
    result = _run(service, lambda: service.request_reset(dto))
    body: dict[str, Any] = {"message": result.message}
    if result.token is not None:
        body["token"] = result.token
    return json_response({"data": body}, status=202)


@bp.post("/password-reset/confirm")
@timing
def confirm_password_reset():
    """Set a new password using a reset token."""

    data = reset_confirm_schema.load(_payload())
    service = components().password_reset_service(service_context())
    dto = ConfirmResetIn(
        token=data["token"],
        new_password=data["new_password"],
        confirm_password=data["confirm_password"],
    )
    result = _run(service, lambda: service.confirm_reset(dto))
    return json_response(
        {"data": {"message": result.message, "revoked_sessions": result.revoked_sessions}}
    )
