"""
Pytest configuration and fixtures for backend testing.

Every test gets its own in-memory SQLite database, the FastAPI test client
built around it, and helpers to register and log in users.
"""
import pytest
from typing import Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from retainerkit.api.main import create_app
from retainerkit.auth.passwords import get_password_hasher
from retainerkit.auth.session_cookie import SESSION_COOKIE_NAME
from retainerkit.database.connection import Database

from .test_base import API


class PlainTextHasher:
    """Fast stand-in for bcrypt; the hash is only tagged, never secret."""

    def hash_password(self, password: str) -> str:
        return f"plain${password}"

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return hashed_password == f"plain${plain_password}"


@pytest.fixture(scope="function")
def database() -> Generator[Database, None, None]:
    """Fresh in-memory database per test."""
    test_database = Database("sqlite://")
    test_database.create_tables()
    yield test_database
    test_database.dispose()


@pytest.fixture(scope="function")
def file_database(tmp_path) -> Generator[Database, None, None]:
    """File-backed database; every session gets its own connection."""
    test_database = Database(f"sqlite:///{tmp_path / 'retainerkit.db'}")
    test_database.create_tables()
    yield test_database
    test_database.dispose()


@pytest.fixture(scope="function")
def db_session(database: Database) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(database: Database):
    """Create FastAPI test client around the test database."""
    app = create_app(database)
    app.dependency_overrides[get_password_hasher] = PlainTextHasher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_user_data() -> Dict:
    """Sample user data for testing."""
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password": "secure_password123",
    }


class ApiSession:
    """Helper for driving the API as specific users."""

    def __init__(self, client: TestClient):
        self.client = client

    def register(self, email: str, password: str = "secure_password123", name: str = None):
        payload = {"email": email, "password": password}
        if name is not None:
            payload["name"] = name
        return self.client.post(f"{API}/auth/register", json=payload)

    def login(self, email: str, password: str = "secure_password123") -> Dict[str, str]:
        """Log in and return bearer headers; the cookie jar is cleared so users can be switched."""
        response = self.client.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.cookies[SESSION_COOKIE_NAME]
        self.client.cookies.clear()
        return {"Authorization": f"Bearer {token}"}

    def register_and_login(self, email: str, name: str = None) -> Dict[str, str]:
        response = self.register(email, name=name)
        assert response.status_code == 201, response.text
        return self.login(email)


@pytest.fixture
def api(client: TestClient) -> ApiSession:
    """Provide the API session helper."""
    return ApiSession(client)


@pytest.fixture
def owner_headers(api: ApiSession) -> Dict[str, str]:
    """Authentication headers for a workspace owner."""
    return api.register_and_login("owner@example.com", name="Olivia")
