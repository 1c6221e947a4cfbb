"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))
    device_info = fields.String(load_default=None, validate=validate.Length(max=255))


class RefreshSchema(Schema):
    """Input payload for rotating a refresh token."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))
    device_info = fields.String(load_default=None, validate=validate.Length(max=255))


class LogoutSchema(Schema):
    """Input payload for closing one or all sessions."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))
    all_sessions = fields.Boolean(load_default=False)


class PasswordResetRequestSchema(Schema):
    """Input payload for requesting a reset token."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class PasswordResetConfirmSchema(Schema):
    """Input payload for setting a new password with a reset token."""

    token = fields.String(required=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, validate=validate.Length(max=128))
    confirm_password = fields.String(required=True, validate=validate.Length(max=128))


class RegisterSchema(Schema):
    """Input payload for self-service sign-up."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(max=128))
    confirm_password = fields.String(required=True, validate=validate.Length(max=128))


class VerifyEmailSchema(Schema):
    """Input payload for confirming an email address."""

    token = fields.String(required=True, validate=validate.Length(min=1))


class RegistrationResponseSchema(Schema):
    """Account summary returned by sign-up and email verification."""

    user_id = fields.String(required=True)
    email = fields.Email(required=True)
    status = fields.String(required=True)
    message = fields.String(required=True)


class SessionResponseSchema(Schema):
    """Response payload containing a token pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)
    access_expires_at = fields.DateTime(required=True)
    refresh_expires_at = fields.DateTime(required=True)
    user_id = fields.String(required=True)


class WhoAmISchema(Schema):
    """Response payload exposing identity details for the authenticated user."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    status = fields.String(required=True)
    last_login_at = fields.DateTime(allow_none=True)
