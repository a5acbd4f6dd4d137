"""
Pytest configuration and shared fixtures for testing.
Sets up a per-test SQLite database and an HTTP test client.
"""

import os
import tempfile

# Environment must be set before any workitems import builds the settings
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET_KEY"] = "TestSecretKeyForJWTThatIsAtLeast32CharactersLong123456"
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{tempfile.gettempdir()}/workitems_unused.db"
os.environ["CACHE_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from workitems.main import app
from workitems.db import Base
from workitems import db as app_db
from workitems.config import Settings


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """Fresh SQLite database per test, swapped in for the application's session factory."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    test_session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    original_session = app_db.async_session
    app_db.async_session = test_session_maker

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    app_db.async_session = original_session
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(test_db_engine):
    """Test HTTP client bound to the application with the test database."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0,
    ) as ac:
        yield ac


@pytest.fixture
def settings() -> Settings:
    """Settings without cache or metrics, for unit tests that build services directly."""
    return Settings(CACHE_ENABLED=False, METRICS_ENABLED=False)


@pytest.fixture
def sample_user():
    return {
        "username": "testuser",
        "email": "test@example.com",
        "password": "password123",
    }


@pytest_asyncio.fixture
async def auth_headers(client, sample_user):
    """Register the sample user and return a bearer Authorization header."""
    response = await client.post("/api/auth/register", json=sample_user)
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def sample_items():
    """Work items with mixed priorities for list tests."""
    return [
        {"title": "Write report", "description": "Quarterly numbers", "priority": "High"},
        {"title": "Buy milk", "priority": "Medium"},
        {"title": "Clean desk", "priority": "Low"},
        {"title": "Answer email", "priority": "High"},
        {"title": "Plan sprint", "description": "Next two weeks", "priority": "Medium"},
    ]
