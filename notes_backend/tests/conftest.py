import os
import tempfile

# bcrypt's minimum cost keeps the suite fast; must be set before the app is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")
# uploads are served from MEDIA_DIR, so the suite writes to a throwaway one
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="notes-media-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notes_backend import config
from notes_backend.main import app
from notes_database.db import get_db
from notes_database.init_db import init_db
from notes_database.models import Base


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine per test."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def media_dir():
    """Directory the app both stores and serves uploads from."""
    return config.MEDIA_DIR


@pytest.fixture
def make_client(db_session):
    """Factory for TestClients sharing one test DB; each client has its own cookie jar."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    clients = []

    def factory():
        c = TestClient(app)
        clients.append(c)
        return c

    yield factory

    for c in clients:
        c.close()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": "alicepassword123",
        "age": "30",
    }


@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "email": "bob@example.com",
        "password": "bobpassword456",
        "age": "41",
    }


def register(client, data):
    """Register through the form; the client keeps the token cookie."""
    r = client.post("/register", data=data, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert "token" in client.cookies
    return r


@pytest.fixture
def logged_in(client, user_data):
    """Client logged in as the default user."""
    register(client, user_data)
    return client


@pytest.fixture
def second_logged_in(make_client, second_user_data):
    c = make_client()
    register(c, second_user_data)
    return c
