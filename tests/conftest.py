"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from authflow.api.deps import MEDIA_STORE_KEY
from authflow.core.config import TestingConfig
from authflow.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authflow.factory import create_app  # application factory under test
from authflow.services._shared.ports import InMemoryMediaStore, StubTokenCodec
from authflow.services.auth.dto import RegistrationPolicy
from authflow.services.auth.service import AuthService
from authflow.services.media.intake import MediaIntake


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Plain-HTTP test client, so cookies are not marked ``Secure``.
    - Avoids hitting external services.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTH_COOKIE_SECURE = False
    CORS_ORIGINS = "http://localhost:5173"


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    TestConfig.UPLOAD_FOLDER = str(tmp_path_factory.mktemp("uploads"))
    app = create_app(TestConfig)
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

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one. Unit-of-work commits release
    session-level SAVEPOINTs only, so nothing reaches the database file.
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


# -- Service doubles -----------------------------------------------------------
@pytest.fixture()
def token_codec() -> StubTokenCodec:
    """Deterministic unsigned codec."""
    return StubTokenCodec()


@pytest.fixture()
def media_store() -> InMemoryMediaStore:
    """Recording media store double."""
    return InMemoryMediaStore()


@pytest.fixture()
def auth_service(token_codec, media_store) -> AuthService:
    """AuthService wired to in-memory doubles with the default cover policy."""
    return AuthService(
        token_codec=token_codec,
        media=MediaIntake(media_store),
        policy=RegistrationPolicy(),
    )


@pytest.fixture()
def staged(tmp_path):
    """Return a factory writing a small staged upload under ``tmp_path``."""

    def _make(name: str = "avatar.png", content: bytes = b"\x89PNG fake") -> str:
        path = tmp_path / name
        path.write_bytes(content)
        return str(path)

    return _make


# -- HTTP ----------------------------------------------------------------------
@pytest.fixture()
def api_media_store(app, monkeypatch) -> InMemoryMediaStore:
    """Swap the app's Cloudinary adapter for the in-memory double."""
    store = InMemoryMediaStore()
    monkeypatch.setitem(app.extensions, MEDIA_STORE_KEY, store)
    return store


@pytest.fixture()
def client(app, session, api_media_store):
    """Flask test client sharing the transactional session."""
    return app.test_client()
