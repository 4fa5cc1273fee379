"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
from fastapi.testclient import TestClient

from app.config import get_db
from app.main import app
from app.schemas import AuthPrincipal, Profile
from app.session import Session

from fakes import FakeSupabase

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.auth.add_user(ALICE_TOKEN, "user-1", "alice@example.com", full_name="Alice Example")
    db.auth.add_user(BOB_TOKEN, "user-2", "bob@example.com", name="Bob")
    return db


@pytest.fixture
def client(fake_db: FakeSupabase):
    app.dependency_overrides[get_db] = lambda: fake_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def alice_headers():
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}


@pytest.fixture
def bob_headers():
    return {"Authorization": f"Bearer {BOB_TOKEN}"}


@pytest.fixture
def alice_session() -> Session:
    principal = AuthPrincipal(
        id="user-1",
        email="alice@example.com",
        user_metadata={"full_name": "Alice Example"},
    )
    profile = Profile(id="user-1", email="alice@example.com", full_name="Jane Doe")
    return Session(principal=principal, profile=profile)
