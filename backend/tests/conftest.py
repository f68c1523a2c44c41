"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Services commit
freely: with ``join_transaction_mode="create_savepoint"`` their commits only
release a SAVEPOINT inside the outer transaction rolled back at teardown.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from wallet_auth.core.config import TestingConfig
from wallet_auth.core.extensions import db as _db  # Flask-SQLAlchemy instance
from wallet_auth.core.wiring import get_components
from wallet_auth.factory import create_app  # application factory under test
from wallet_auth.services._shared.ports.legacy_provider import (
    InMemoryLegacyProfileSource,
    InMemoryProviderTokenVerifier,
)


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Never reaches Redis or the legacy provider; tests inject doubles.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REDIS_URL = None
    REFRESH_TOKEN_BACKEND = "sql"
    REFRESH_TOKEN_IN_BODY = False
    LEGACY_PROFILE_URL = None
    LEGACY_AUTO_PROVISION = True
    USE_PROXYFIX = False
    CORS_ORIGINS = "http://localhost:5173"


@pytest.fixture(scope="session")
def provider_verifier_double() -> InMemoryProviderTokenVerifier:
    """Legacy token oracle shared by the app; cleared before every test."""
    return InMemoryProviderTokenVerifier()


@pytest.fixture(scope="session")
def profile_source_double() -> InMemoryLegacyProfileSource:
    """Legacy profile records shared by the app; cleared before every test."""
    return InMemoryLegacyProfileSource()


@pytest.fixture(scope="session")
def app(provider_verifier_double, profile_source_double):
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and the legacy
        provider replaced by in-memory doubles.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(
        TestConfig,
        instance_relative_config=False,
        provider_verifier=provider_verifier_double,
        profiles=profile_source_double,
    )
    app.logger.setLevel("WARNING")
    return app


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy, not pysqlite, emit BEGIN so SAVEPOINTs nest correctly."""

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        if _db.engine.dialect.name == "sqlite":
            _enable_sqlite_savepoints(_db.engine)
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session joined to a per-test outer transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; every commit releases
        a SAVEPOINT and the outer transaction is rolled back afterwards.
    """
    top_trans = connection.begin()
    factory = sessionmaker(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
    )
    scoped = scoped_session(factory)

    # Make app code (repositories, UoWs) use this scoped session
    original_session = db.session
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(autouse=True)
def _reset_legacy_doubles(provider_verifier_double, profile_source_double):
    provider_verifier_double.identities.clear()
    profile_source_double.profiles.clear()
    yield


@pytest.fixture()
def provider_tokens(provider_verifier_double) -> InMemoryProviderTokenVerifier:
    """Register legacy tokens: ``provider_tokens.register(token, subject_id, email)``."""
    return provider_verifier_double


@pytest.fixture()
def legacy_profiles(profile_source_double) -> InMemoryLegacyProfileSource:
    """Legacy profile records keyed by subject id."""
    return profile_source_double


@pytest.fixture()
def components(app, session):
    """Collaborators wired by the application factory."""
    return get_components()


@pytest.fixture()
def client(app, session):
    """Test client running requests against the transactional session."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper when the test uses the database."""
    if "session" not in request.fixturenames:
        yield
        return
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)
