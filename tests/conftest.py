"""
tests/conftest.py -- Shared test fixtures for the planner API tests.

This module provides:
  - make_store(): isolated named shared-memory SQLite UserStore
  - FakeCredentialStore: dict-backed stand-in for UserStore
  - client: TestClient with a patched lifespan and a fresh store per test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment variables must be set before any api/auth/core import, because
get_settings() is cached and the limiter and dummy hash read it at import.
The limiter is disabled for the suite; the limited_client fixture switches it
on for the tests that exercise the 429 path.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any project import.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-planner-auth-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
# Rate-limit tests expect the third request in a window to be rejected.
os.environ.setdefault("AUTH_RATE_LIMIT", "2/minute")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User, UserProfile
from auth.store import DuplicateEmailError, UserStore
from core.config import get_settings

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store() -> UserStore:
    """Create a UserStore on a uniquely named shared-memory SQLite database."""
    name = f"test_auth_{uuid.uuid4().hex}"
    return UserStore(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


class FakeCredentialStore:
    """In-memory CredentialStore keyed by email.

    Enforces email uniqueness on create_user() the way the UNIQUE constraint
    does in UserStore.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}

    def get_by_email(self, email: str) -> User | None:
        return self.users.get(email)

    def get_by_id(self, user_id: str) -> UserProfile | None:
        for user in self.users.values():
            if user.id == user_id:
                return UserProfile(id=user.id, name=user.name, email=user.email, created_at=user.created_at)
        return None

    def create_user(self, name: str, email: str, password_hash: str) -> UserProfile:
        if email in self.users:
            raise DuplicateEmailError(email)
        user = User(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            hashed_password=password_hash,
            created_at="2026-01-20T21:23:30+00:00",
        )
        self.users[email] = user
        return UserProfile(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


def _patch_lifespan(user_store):
    """Return a lifespan that wires the given store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def fake_store() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def client(store: UserStore) -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a fresh, empty user store.

    Each test gets its own cookie jar, so a sign-in in one test never leaks a
    session into another.
    """
    app.router.lifespan_context = _patch_lifespan(store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def lenient_client(store: UserStore) -> Generator[TestClient, None, None]:
    """TestClient that returns 500 responses instead of re-raising.

    Starlette's ServerErrorMiddleware re-raises after the catch-all handler
    has answered; raise_server_exceptions=False lets tests inspect that answer.
    """
    app.router.lifespan_context = _patch_lifespan(store)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def settings_env(monkeypatch):
    """Apply environment overrides and rebuild the cached Settings.

    Usage:
        def test_x(settings_env):
            settings_env(ENVIRONMENT="production", JWT_SECRET="...")
    """

    def apply(**env: str) -> None:
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    yield apply
    monkeypatch.undo()
    get_settings.cache_clear()


@pytest.fixture
def register(client: TestClient):
    """Return a helper that posts a sign-up; defaults to the Ann example account."""

    def _register(name: str = "Ann", email: str = "a@x.com", password: str = "secret1"):
        return client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})

    return _register


@pytest.fixture
def limited_client(client: TestClient, monkeypatch) -> Generator[TestClient, None, None]:
    """TestClient with the rate limiter enabled and its counters cleared."""
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    yield client
    limiter.reset()
