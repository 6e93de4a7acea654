"""Pytest configuration and fixtures.

Database-backed tests run against a fresh in-memory SQLite database per test.
Valkey is replaced by an in-memory fake so token revocation can be exercised.
"""

from __future__ import annotations

from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Configure asyncio
pytest_plugins = ["pytest_asyncio"]


class FakeValkey:
    """Minimal async stand-in for the redis client used by the token blacklist."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def get(self, key):
        return self.store.get(key)

    async def exists(self, key):
        return int(key in self.store)

    async def ping(self):
        return True


@pytest.fixture(autouse=True)
def fake_valkey(monkeypatch) -> FakeValkey:
    """Route all token blacklist calls to an in-memory fake."""
    import bakumania.cache.token_blacklist as token_blacklist

    fake = FakeValkey()

    async def _client():
        return fake

    monkeypatch.setattr(token_blacklist, "get_valkey_client", _client)
    return fake


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[None, None]:
    """Swap the module-level engine for an in-memory SQLite database."""
    import bakumania.database.connection as db_conn
    from bakumania.database.orm import Base

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_conn._engine = engine
    db_conn._session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    yield

    await engine.dispose()
    db_conn._engine = None
    db_conn._session_factory = None


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client for routes that never reach the database."""
    from bakumania.api.app import create_api_app

    app = create_api_app()
    # No context manager: the lifespan would open a real database engine.
    yield TestClient(app, raise_server_exceptions=False)


@pytest_asyncio.fixture
async def async_client(db) -> AsyncGenerator[AsyncClient, None]:
    """Async test client bound to the in-memory database."""
    from bakumania.api.app import create_api_app

    app = create_api_app()
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_token() -> str:
    """Create a valid JWT token for testing."""
    from bakumania.core.security import create_access_token
    return create_access_token(username="test_user", is_admin=False)


@pytest.fixture
def admin_token() -> str:
    """Create an admin JWT token for testing."""
    from bakumania.core.security import create_access_token
    return create_access_token(username="test_admin", is_admin=True)


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Create authorization headers with a regular user token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict:
    """Create authorization headers with an admin token."""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest_asyncio.fixture
async def test_users(db) -> None:
    """Accounts matching the auth_token/admin_token subjects."""
    from bakumania.core.security import hash_password
    from bakumania.repositories import users_orm

    await users_orm.create_user("test_user", hash_password("secret-pass"))
    await users_orm.create_user("test_admin", hash_password("admin-pass"), is_admin=True)


@pytest_asyncio.fixture
async def make_bakugan(db):
    """Factory creating a catalog record through the add flow."""
    from bakumania.services import catalog

    async def _make(
        name: str = "Dragonoid",
        price: float = 100.0,
        date: str = "2024-01-01",
        size: str = "B1",
        element: str = "Pyrus",
    ) -> dict:
        result = await catalog.add_bakugan(
            names=[name], size=size, element=element, current_price=price, date=date
        )
        return result.bakugan

    return _make
