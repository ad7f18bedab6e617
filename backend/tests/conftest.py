"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Token-core
fixtures (keys, codec, ledgers, lifecycle) are built from in-memory
adapters so most unit tests never touch the database at all.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.helpers.tokens import AUDIENCE, ISSUER, STRONG_PASSWORD, MutableClock
from tokenauth.core.config import TestingConfig
from tokenauth.core.extensions import db as _db  # Flask-SQLAlchemy instance
from tokenauth.factory import create_app  # application factory under test
from tokenauth.infra.jwt.jwt_token_codec import PyJWTTokenCodec
from tokenauth.infra.keys.signing_key_provider import SigningKeyProvider
from tokenauth.services._shared.ports import InMemoryRefreshTokenLedger, InMemoryUserDirectory
from tokenauth.services.tokens.dto import TokenLifecycleConfig
from tokenauth.services.tokens.lifecycle import TokenLifecycleManager


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Keeps the SQL ledger so API tests exercise the default backend.
    - Leaves the throttle off; throttle tests swap in their own instance.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REFRESH_LEDGER_BACKEND = "sql"
    JWT_ISSUER = ISSUER
    JWT_AUDIENCE = AUDIENCE
    JWT_DECODE_ISSUER = ISSUER
    JWT_DECODE_AUDIENCE = AUDIENCE
    JWT_PRIVATE_KEY_PATH = None
    JWT_PUBLIC_KEY_PATH = None
    JWT_KEY_ID = None
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
    app = create_app(TestConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Parameters
    ----------
    app: flask.Flask
        Application fixture ensuring the Flask context is available.

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

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one. Units of Work that commit
    only release their own SAVEPOINT.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
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


@pytest.fixture()
def client(app, session):
    """Return a Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture()
def components(app):
    """Token core wired into the testing application."""
    from tokenauth.core.extensions import get_components

    return get_components(app)


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def freeze_time() -> Callable[[str | None], Any]:
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2024-01-01"):
    ...         ...
    """
    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None) -> Any:
        return _freeze_time(target or "2024-01-01")

    return _factory


# -- Token core built from in-memory adapters -------------------------------
@pytest.fixture(scope="session")
def signing_keys() -> SigningKeyProvider:
    """One RSA pair for the whole run; generation is the slow part."""
    return SigningKeyProvider.generate(key_id="test-key")


@pytest.fixture()
def codec(signing_keys) -> PyJWTTokenCodec:
    return PyJWTTokenCodec(signing_keys, issuer=ISSUER, audience=AUDIENCE)


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture()
def ledger() -> InMemoryRefreshTokenLedger:
    return InMemoryRefreshTokenLedger(timeout=1.0)


@pytest.fixture()
def directory() -> InMemoryUserDirectory:
    users = InMemoryUserDirectory()
    users.create(user_id="1", username="alice", password=STRONG_PASSWORD, roles=("ROLE_USER",))
    users.create(
        user_id="2", username="bob", password=STRONG_PASSWORD, roles=("ROLE_ADMIN", "ROLE_USER")
    )
    return users


@pytest.fixture()
def lifecycle_config() -> TokenLifecycleConfig:
    return TokenLifecycleConfig(
        issuer=ISSUER,
        audience=AUDIENCE,
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )


@pytest.fixture()
def lifecycle(codec, ledger, directory, lifecycle_config, clock) -> TokenLifecycleManager:
    """Lifecycle manager over in-memory ports and a controllable clock."""
    return TokenLifecycleManager(codec, ledger, directory, config=lifecycle_config, clock=clock)


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture()
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


@pytest.fixture(autouse=True)
def _bind_factories(request):
    """Bind factories only for tests that already use the database."""
    if "session" in request.fixturenames:
        request.getfixturevalue("_factories_session")
    yield
