"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset or blank.

    Returns
    -------
    int
        Parsed integer value.

    Raises
    ------
    ValueError
        If the variable is set but is not a valid integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}") from exc


def rate_limit_rule(name: str, *, limit: int, window_ms: int) -> dict[str, int | str]:
    """Build a rate-limit rule mapping overridable through the environment.

    ``RATE_LIMIT_<NAME>_MAX`` and ``RATE_LIMIT_<NAME>_WINDOW_MS`` override the
    given defaults.
    """
    upper = name.upper()
    return {
        "key_prefix": f"rl:{name}",
        "limit": env_int(f"RATE_LIMIT_{upper}_MAX", limit),
        "window_ms": env_int(f"RATE_LIMIT_{upper}_WINDOW_MS", window_ms),
    }


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development-safe placeholder and should be
        overridden in production.
    ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, RESET_TOKEN_SECRET, VERIFICATION_TOKEN_SECRET: str
        HMAC keys used by the signed-token codec, one per token purpose.
        The reset and verification secrets fall back to the access secret.
    JWT_ALGORITHM: str
        Signature algorithm for every signed token.
    ACCESS_TOKEN_TTL_SECONDS, REFRESH_TOKEN_TTL_SECONDS, PASSWORD_RESET_TTL_SECONDS: int
        Validity windows (5 hours, 3 days and 30 minutes by default).
    EMAIL_VERIFICATION_TTL_SECONDS: int
        Validity of email-verification tokens (24 hours by default).
    LOCKOUT_MAX_FAILED_ATTEMPTS, LOCKOUT_BASE_SECONDS, LOCKOUT_MAX_SECONDS: int
        Progressive account lockout policy.
    RATE_LIMITS: dict
        Named rate-limit rules (``global``, ``auth``, ``password_reset``, ``register``).
    SESSION_STORE_BACKEND: str
        ``"memory"`` or ``"sqlalchemy"`` for accounts and token stores.
    RATE_LIMIT_BACKEND: str
        ``"memory"`` or ``"redis"``.
    REDIS_URL: str | None
        Connection string for the Redis rate limiter.
    EXPOSE_RESET_TOKEN: bool
        Include the raw reset token in the request-reset response body.
    EXPOSE_VERIFICATION_TOKEN: bool
        Include the raw verification token in the registration response body.
    RESET_TOKEN_SENDER: str
        ``"log"`` (records the dispatch only) or ``"memory"`` (outbox).
    USE_PROXYFIX, PROXYFIX_HOPS: bool, int
        Trust ``X-Forwarded-*`` from this many proxies.
    PASSWORD_HASH_METHOD: str
        Werkzeug hashing method for new password hashes.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "CHANGE_ME_ACCESS_TOKEN_SECRET_0123456789")
    REFRESH_TOKEN_SECRET = os.getenv(
        "REFRESH_TOKEN_SECRET", "CHANGE_ME_REFRESH_TOKEN_SECRET_0123456789"
    )
    RESET_TOKEN_SECRET = os.getenv("RESET_TOKEN_SECRET") or ACCESS_TOKEN_SECRET
    VERIFICATION_TOKEN_SECRET = os.getenv("VERIFICATION_TOKEN_SECRET") or ACCESS_TOKEN_SECRET
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authcore")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authcore-clients")
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Token lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 18000)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 259200)
    PASSWORD_RESET_TTL_SECONDS = env_int("PASSWORD_RESET_TTL_SECONDS", 1800)
    EMAIL_VERIFICATION_TTL_SECONDS = env_int("EMAIL_VERIFICATION_TTL_SECONDS", 24 * 60 * 60)

    # Account lockout
    LOCKOUT_MAX_FAILED_ATTEMPTS = env_int("LOCKOUT_MAX_FAILED_ATTEMPTS", 5)
    LOCKOUT_BASE_SECONDS = env_int("LOCKOUT_BASE_SECONDS", 15 * 60)
    LOCKOUT_MAX_SECONDS = env_int("LOCKOUT_MAX_SECONDS", 60 * 60)

    # Rate limiting
    RATE_LIMITS = {
        "global": rate_limit_rule("global", limit=100, window_ms=15 * 60 * 1000),
        "auth": rate_limit_rule("auth", limit=5, window_ms=60 * 1000),
        "password_reset": rate_limit_rule("password_reset", limit=3, window_ms=60 * 60 * 1000),
        "register": rate_limit_rule("register", limit=5, window_ms=60 * 60 * 1000),
    }
    RATE_LIMIT_GLOBAL_ENABLED = env_bool("RATE_LIMIT_GLOBAL_ENABLED", True)

    # Backends
    SESSION_STORE_BACKEND = os.getenv("SESSION_STORE_BACKEND", "sqlalchemy")
    RATE_LIMIT_BACKEND = os.getenv("RATE_LIMIT_BACKEND", "memory")
    REDIS_URL = os.getenv("REDIS_URL")

    EXPOSE_RESET_TOKEN = False
    EXPOSE_VERIFICATION_TOKEN = False
    RESET_TOKEN_SENDER = os.getenv("RESET_TOKEN_SENDER", "log")  # "log" | "memory"

    # Reverse proxy (client IPs feed the rate limiter)
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXYFIX_HOPS = env_int("PROXYFIX_HOPS", 1)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and exposes reset and verification tokens in responses so
    the flow can be exercised without an email transport.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    EXPOSE_RESET_TOKEN = env_bool("EXPOSE_RESET_TOKEN", True)
    EXPOSE_VERIFICATION_TOKEN = env_bool("EXPOSE_VERIFICATION_TOKEN", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps every store in process memory.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SESSION_STORE_BACKEND = "memory"
    RATE_LIMIT_BACKEND = "memory"
    EXPOSE_RESET_TOKEN = True
    EXPOSE_VERIFICATION_TOKEN = True
    RESET_TOKEN_SENDER = "memory"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug, SQL echoing and token exposure disabled.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    EXPOSE_RESET_TOKEN = False
    EXPOSE_VERIFICATION_TOKEN = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
