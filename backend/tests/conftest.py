"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Time-dependent
components receive a :class:`FixedClock` that tests move by hand.
"""

from __future__ import annotations

import os

import pytest
from authcore.core.config import TestingConfig
from authcore.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authcore.core.wiring import get_components
from authcore.factory import create_app  # application factory under test
from authcore.infra.jwt import JWTTokenCodec
from authcore.infra.security import WerkzeugPasswordHasher
from authcore.services._shared.claims import TokenPurpose
from authcore.services._shared.ports import (
    FixedClock,
    InMemoryRateLimiter,
    InMemoryRefreshTokenStore,
    InMemoryResetTokenSender,
    InMemoryResetTokenStore,
    InMemoryUserStore,
)
from authcore.services._shared.rate_limit import RateLimitGuard, RateLimitRule
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.helpers.utils import START

TEST_HASH_METHOD = "pbkdf2:sha256:1000"


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Keeps session stores and the rate limiter in process memory.
    - Uses fixed secrets so tokens are reproducible across fixtures.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret"
    ACCESS_TOKEN_SECRET = "test-access-secret"
    REFRESH_TOKEN_SECRET = "test-refresh-secret"
    RESET_TOKEN_SECRET = "test-reset-secret"
    VERIFICATION_TOKEN_SECRET = "test-verification-secret"
    REDIS_URL = None
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, clock=FixedClock(START))
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one. Repositories commit after
    every store operation; those commits only release SAVEPOINTs.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    # 3) SAVEPOINT per test
    nested = connection.begin_nested()

    # 4) Re-create SAVEPOINT when the previous nested transaction ends
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # 5) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


# -- Session components ---------------------------------------------------------
@pytest.fixture()
def clock():
    """Manually driven clock starting at :data:`START`."""
    return FixedClock(START)


@pytest.fixture(scope="session")
def hasher():
    """Fast Werkzeug hasher (low iteration count)."""
    return WerkzeugPasswordHasher(TEST_HASH_METHOD)


@pytest.fixture()
def codec(clock):
    """JWT codec with one secret per purpose, driven by ``clock``."""
    return JWTTokenCodec(
        secrets={
            TokenPurpose.ACCESS: TestConfig.ACCESS_TOKEN_SECRET,
            TokenPurpose.REFRESH: TestConfig.REFRESH_TOKEN_SECRET,
            TokenPurpose.PASSWORD_RESET: TestConfig.RESET_TOKEN_SECRET,
            TokenPurpose.EMAIL_VERIFICATION: TestConfig.VERIFICATION_TOKEN_SECRET,
        },
        clock=clock,
    )


@pytest.fixture()
def users():
    return InMemoryUserStore()


@pytest.fixture()
def refresh_store():
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def reset_store():
    return InMemoryResetTokenStore()


@pytest.fixture()
def sender():
    return InMemoryResetTokenSender()


@pytest.fixture()
def rate_limiter(clock):
    return InMemoryRateLimiter(clock)


@pytest.fixture()
def rate_guard(rate_limiter):
    """Guard with the default ``auth``, ``password_reset`` and ``register`` rules."""
    return RateLimitGuard(
        rate_limiter,
        {
            "auth": RateLimitRule("auth", "rl:auth", limit=5, window_ms=60_000),
            "password_reset": RateLimitRule(
                "password_reset", "rl:password_reset", limit=3, window_ms=3_600_000
            ),
            "register": RateLimitRule("register", "rl:register", limit=5, window_ms=3_600_000),
        },
    )


# -- HTTP layer ------------------------------------------------------------------
@pytest.fixture()
def api_clock():
    """Clock injected into :func:`api_app`."""
    return FixedClock(START)


@pytest.fixture()
def api_app(api_clock):
    """Fresh application per test so in-memory session state never leaks."""
    application = create_app(TestConfig, clock=api_clock)
    application.logger.setLevel("WARNING")
    # Shadow the session-wide app context pushed by ``db`` so ``current_app``
    # (used by CLI commands) resolves to this application.
    with application.app_context():
        yield application


@pytest.fixture()
def components(api_app):
    """Session components registered on :func:`api_app`."""
    return get_components(api_app)


@pytest.fixture()
def client(api_app):
    """Return a Flask test client for :func:`api_app`."""
    return api_app.test_client()
