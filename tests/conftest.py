"""Shared fixtures and helpers for the acronym backend tests."""

import os

import pytest

# Configure the environment before the application module is imported.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URI", "sqlite:///:memory:")

from acronym_backend.app import app, db, limiter
from acronym_backend.services import UserService


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Reset request counters between tests to avoid cross-test bleed."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def client():
    """Flask test client over an empty in-memory SQLite database."""
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
    with app.test_client() as client:
        yield client
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session():
    """Database session inside an application context for service tests."""
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield db.session
        db.session.remove()
        db.drop_all()


# --- Helper utilities ------------------------------------------------------


def create_user(username="admin", password="secret", name=None):
    """Insert a user directly and return its id.

    Account creation over HTTP needs a token, so tests seed the first user
    the same way ``flask create-admin`` does.
    """
    with app.app_context():
        user = UserService(db.session).create(username, name or username.title(), password)
        return user.id


def login_user(client, username="admin", password="secret"):
    """Log in with basic credentials and return the response."""
    return client.post("/api/users/login", auth=(username, password))


def auth_headers(client, username="admin", password="secret"):
    """Return an ``Authorization`` header carrying a fresh bearer token."""
    token = login_user(client, username, password).get_json()["value"]
    return {"Authorization": f"Bearer {token}"}


def create_acronym(client, headers, short="OMG", long="Oh My God"):
    """Create an acronym over the API and return the response JSON."""
    resp = client.post("/api/acronyms", json={"short": short, "long": long}, headers=headers)
    assert resp.status_code == 200
    return resp.get_json()


def create_category(client, headers, name="Teenager"):
    resp = client.post("/api/categories", json={"name": name}, headers=headers)
    assert resp.status_code == 200
    return resp.get_json()
