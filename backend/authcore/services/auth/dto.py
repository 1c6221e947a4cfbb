# authcore/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from authcore.services._shared.tokens import ACCESS_TOKEN_VALIDITY, REFRESH_TOKEN_VALIDITY

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized by the store).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    :param client_ip: Caller address used as rate-limit subject.
    :type client_ip: str | None
    :param device_info: Optional client descriptor stored on the refresh token.
    :type device_info: str | None
    """

    email: str
    password: str
    client_ip: str | None = None
    device_info: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh token.
    :type refresh_token: str
    :param device_info: Replaces the stored descriptor when given.
    :type device_info: str | None
    """

    refresh_token: str
    device_info: str | None = None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Refresh token of the current session.
    :type refresh_token: str
    :param all_sessions: If True, revoke every session of the user.
    :type all_sessions: bool
    """

    refresh_token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Output DTO with an access/refresh token pair.

    :param access_token: Encoded access token.
    :param refresh_token: Encoded refresh token.
    :param access_expires_at: Access token expiry (UTC).
    :param refresh_expires_at: Refresh token expiry (UTC).
    :param expires_in: Access token lifetime in seconds.
    :param user_id: Subject of both tokens.
    :param refresh_token_id: Server id of the refresh token.
    """

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    expires_in: int
    user_id: str
    refresh_token_id: str
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class LogoutOut:
    """:param revoked: Number of refresh tokens revoked by this call."""

    revoked: int


@dataclass(frozen=True, slots=True)
class AccountOut:
    """Public view of the authenticated account."""

    id: str
    email: str
    status: str
    last_login_at: datetime | None


# ------------------------ Config DTO --------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    """

    access_ttl: timedelta = ACCESS_TOKEN_VALIDITY
    refresh_ttl: timedelta = REFRESH_TOKEN_VALIDITY
