"""Shared pytest fixtures for all test suites."""

import os
import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from identity_api.app.api.deps import get_image_cache
from identity_api.app.api.scopes import SCOPE_ORGANIZATION, SCOPE_ORGANIZATION_USER, SCOPE_USER
from identity_api.app.config import Settings, get_settings
from identity_api.app.content.cache import InMemoryImageCache
from identity_api.app.db.engine import get_session
from identity_api.app.db.models import Base
from identity_api.app.main import app
from tests.world import World, seed_world

ALL_SCOPES = (SCOPE_USER, SCOPE_ORGANIZATION, SCOPE_ORGANIZATION_USER)


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine with the schema.

    A file is used so every connection (test loop and TestClient loop) sees
    the same database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def world(sqlite_engine: AsyncEngine) -> World:
    """Seeded reference data."""
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        return await seed_world(session)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        upload_root=str(tmp_path / "uploads"),
        redis_url=None,
        scope_enforcement=True,
        name_source="user",
    )


@pytest.fixture
def image_cache() -> InMemoryImageCache:
    return InMemoryImageCache()


@pytest.fixture
def client(
    sqlite_engine: AsyncEngine,
    test_settings: Settings,
    image_cache: InMemoryImageCache,
) -> Generator[TestClient, None, None]:
    """Test client bound to the SQLite database, upload root and cache."""

    async def _get_session() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_image_cache] = lambda: image_cache

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build request headers for a principal."""

    def build(
        user_id: uuid.UUID,
        organization_id: uuid.UUID | None = None,
        scopes: tuple[str, ...] = ALL_SCOPES,
    ) -> dict[str, str]:
        token = f"{user_id}:{organization_id}" if organization_id else str(user_id)
        return {"Authorization": f"Bearer {token}", "X-Auth-Scopes": " ".join(scopes)}

    return build
