"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.helpers import USER_HEADER
from database import Base, create_db_engine, get_db
from main import app
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    other_user,
    stock,
    user,
)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine with foreign keys enforced."""
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="db")
def db_fixture(engine):
    """Create a session on the in-memory database for testing."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="anonymous_client")
def anonymous_client_fixture(db):
    """Create a test client with the test database and no caller identity."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(anonymous_client, user):
    """Create a test client that calls the API as ``user``."""
    anonymous_client.headers.update({USER_HEADER: user.id})
    return anonymous_client
