from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
# Cheap hashing parameters; production values come from the environment.
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "1024"
os.environ["ARGON2_PARALLELISM"] = "1"

import orgdb  # noqa: E402,F401  registers every model on Base.metadata
from orgdb.database import Base, get_db, get_read_db  # noqa: E402
from orgdb.main import app  # noqa: E402
from orgdb.apps.accounts import models as account_models  # noqa: E402
from orgdb.apps.accounts import services as account_services  # noqa: E402


@pytest.fixture()
def db_session():
    # StaticPool keeps the single in-memory database visible to TestClient's
    # worker thread.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def fk_db_session():
    """Like `db_session`, with SQLite foreign key enforcement switched on."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def roles(db_session):
    roles = account_services.ensure_default_roles(db_session)
    db_session.commit()
    return roles


@pytest.fixture()
def superuser(db_session) -> account_models.User:
    user = account_models.User(
        email="root@example.com",
        username="root",
        hashed_password="test-hash",
        is_active=True,
        is_superuser=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def client(db_session):
    """TestClient whose read and write sessions are the test's `db_session`."""

    def _get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_read_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
