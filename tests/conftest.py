"""Pytest fixtures for the API tests.

The module-level database handle is swapped for an in-memory mongomock
database, and settings are overridden with a test signing secret and a
low bcrypt work factor.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from config import Settings, get_settings
from main import app

TEST_JWT_SECRET = "test-jwt-secret-for-testing-only"  # NOQA: S105
TEST_PASSWORD = "abcdef"  # NOQA: S105


@pytest.fixture
def test_settings() -> Settings:
    return Settings(jwt_secret=TEST_JWT_SECRET, bcrypt_rounds=4, database_name="test_signals_feed")


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Fresh in-memory database for every test."""
    db = mongomock.MongoClient()["test_signals_feed"]
    monkeypatch.setattr(database, "db", db)
    database.ensure_indexes()
    return db


@pytest.fixture
def client(test_settings):
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Create an account through the API and return the response body."""

    def _signup(email: str, password: str = TEST_PASSWORD, admin: bool = False, premium: bool = False) -> dict:
        if admin:
            response = client.post("/api/auth/admin/signup", json={"email": email, "password": password})
        else:
            response = client.post(
                "/api/auth/user/signup",
                json={"email": email, "password": password, "isPremium": premium},
            )
        assert response.status_code == 201, response.text
        return response.json()

    return _signup


@pytest.fixture
def bearer():
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _bearer


@pytest.fixture
def admin_token(signup) -> str:
    return signup("admin@x.com", admin=True)["token"]


@pytest.fixture
def user_token(signup) -> str:
    return signup("a@x.com")["token"]


@pytest.fixture
def premium_token(signup) -> str:
    return signup("premium@x.com", premium=True)["token"]
