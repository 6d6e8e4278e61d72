"""Pytest configuration and fixtures."""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REQUEST_LOG_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from techhive.config import Settings
from techhive.main import create_app
from techhive.services.auth_service import AccountRegistry
from techhive.services.user_store import UserStore, demo_users

TEST_JWT_SECRET = "test-jwt-secret"
TEST_API_KEY = "test-api-key"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(
        _env_file=None,
        jwt_secret=TEST_JWT_SECRET,
        api_key=TEST_API_KEY,
        bcrypt_rounds=4,
        log_level="WARNING",
        log_dir=str(tmp_path / "logs"),
        request_log_enabled=False,
        environment="test",
    )


@pytest.fixture(scope="session")
def accounts() -> AccountRegistry:
    """Credential registry with the built-in accounts (cheap bcrypt rounds)."""
    return AccountRegistry.from_seeds(rounds=4)


@pytest.fixture
def user_store() -> UserStore:
    return UserStore(demo_users())


@pytest.fixture
def app(test_settings, user_store, accounts):
    return create_app(test_settings, user_store=user_store, accounts=accounts)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as tc:
        yield tc


def _login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


@pytest.fixture
def admin_token(client) -> str:
    return _login(client, "admin@techhive.com", "admin123")


@pytest.fixture
def manager_token(client) -> str:
    return _login(client, "manager@techhive.com", "manager123")


@pytest.fixture
def user_token(client) -> str:
    return _login(client, "user@techhive.com", "user123")


@pytest.fixture
def bearer():
    """Build an Authorization header for a token."""

    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def api_key() -> str:
    return TEST_API_KEY
