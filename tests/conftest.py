"""
Shared Test Fixtures for the Portfolio Backend

Async code is driven with asyncio.run() against a throwaway SQLite file,
so every test gets an empty store. Object storage is always a fake; nothing
here talks to Cloudinary.
"""

import asyncio
import io
from typing import Awaitable, Callable, List, Optional, Tuple

import pytest
from PIL import Image

from portfolio.auth.session import SessionGate, UserHandle
from portfolio.config import settings
from portfolio.database import build_engine
from portfolio.errors import AuthError, UploadError
from portfolio.store.client import RemoteStore
from portfolio.utils.auth import hash_password

OPERATOR_EMAIL = "owner@example.com"
OPERATOR_PASSWORD = "correct horse battery staple"
OPERATOR_PASSWORD_HASH = hash_password(OPERATOR_PASSWORD, rounds=4)


# =============================================================================
# Fakes
# =============================================================================

class FakeStorage:
    """In-memory attachment storage recording uploads and removals."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploaded: List[Tuple[str, bytes]] = []
        self.removed: List[str] = []

    async def upload(self, data: bytes, filename: str = "") -> str:
        if self.fail:
            raise UploadError("storage offline")
        self.uploaded.append((filename, data))
        return f"https://res.cloudinary.com/demo/image/upload/v1/photos/img{len(self.uploaded)}.webp"

    async def remove(self, url: str) -> None:
        self.removed.append(url)


class StubAuthenticator:
    """Authenticator with a fixed current user and one accepted password."""

    def __init__(self, user: Optional[UserHandle] = None, password: str = OPERATOR_PASSWORD):
        self.user = user
        self.password = password

    async def current_user(self) -> Optional[UserHandle]:
        return self.user

    async def sign_in(self, email: str, password: str) -> UserHandle:
        if password != self.password:
            raise AuthError("Invalid credentials. Please try again.")
        self.user = UserHandle(email=email)
        return self.user

    async def sign_out(self) -> None:
        self.user = None


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'portfolio-test.db'}"


@pytest.fixture
def run_store(db_url) -> Callable:
    """
    Run an async test body against a fresh store.

    Usage:
        def test_something(run_store):
            async def body(store):
                ...
            run_store(body)
    """
    def run(body: Callable[[RemoteStore], Awaitable], **store_kwargs):
        async def main():
            store = RemoteStore(build_engine(db_url), **store_kwargs)
            await store.create_schema()
            try:
                return await body(store)
            finally:
                await store.close()
        return asyncio.run(main())
    return run


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def png_bytes() -> bytes:
    """A small real PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), (200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def operator_session() -> SessionGate:
    """A session gate whose check() reports the operator as signed in."""
    return SessionGate(StubAuthenticator(UserHandle(email=OPERATOR_EMAIL)))


@pytest.fixture
def anonymous_session() -> SessionGate:
    return SessionGate(StubAuthenticator())


@pytest.fixture
def operator_credentials(monkeypatch):
    """Configure the operator login for the duration of a test."""
    monkeypatch.setattr(settings, "ADMIN_EMAIL", OPERATOR_EMAIL)
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", OPERATOR_PASSWORD_HASH)
    monkeypatch.setattr(settings, "JWT_SECRET_KEY", "test-secret-key")
    return OPERATOR_EMAIL, OPERATOR_PASSWORD


# =============================================================================
# HTTP Fixtures
# =============================================================================

@pytest.fixture
def client(db_url, monkeypatch, operator_credentials):
    """FastAPI TestClient bound to a fresh SQLite store and fake storage."""
    from fastapi.testclient import TestClient

    from portfolio import deps
    from portfolio.main import app
    from portfolio.utils.rate_limit import limiter

    storage = FakeStorage()
    monkeypatch.setattr(deps, "store", RemoteStore(build_engine(db_url)))
    monkeypatch.setattr(deps, "storage", storage)
    monkeypatch.setattr(limiter, "enabled", False)

    with TestClient(app) as test_client:
        test_client.storage = storage
        yield test_client


@pytest.fixture
def auth_headers(client) -> dict:
    """Bearer header for the operator, obtained through the login endpoint."""
    response = client.post(
        "/api/auth/login",
        json={"email": OPERATOR_EMAIL, "password": OPERATOR_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}
