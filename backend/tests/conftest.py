"""
Pytest configuration and shared test fixtures.

Tests run against an in-memory SQLite database through aiosqlite. Each test
gets a fresh engine with the schema created from the ORM metadata, a pair
of seeded sites with recipes, and, for API tests, an HTTP client whose
database dependency is bound to that engine.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")

from dataclasses import dataclass  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from typing import AsyncGenerator, Generator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from concrete_plant.core.config import Settings  # noqa: E402
from concrete_plant.database.base import Base  # noqa: E402
from concrete_plant.database.connection import (  # noqa: E402
    build_session_factory,
    create_engine,
    get_db,
)
from concrete_plant.database.models import Recipe, Site  # noqa: E402
from concrete_plant.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@dataclass
class SeedData:
    """Ids of the rows every test starts with."""

    site_a: int
    site_b: int
    recipe_a1: int
    recipe_a2: int
    recipe_b1: int
    archived_recipe: int


@pytest_asyncio.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh in-memory database with the full schema.

    Yields:
        AsyncEngine: Engine pinned to a single shared connection
    """
    engine = create_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def seed(session_factory) -> SeedData:
    """
    Two sites with recipes, plus one archived recipe on site A.

    Written and committed by a short-lived session so later sessions on
    the shared connection start clean.
    """
    async with session_factory() as session:
        site_a = Site(code="SITE-A", name="North Plant")
        site_b = Site(code="SITE-B", name="South Plant")
        session.add_all([site_a, site_b])
        await session.flush()

        recipe_a1 = Recipe(site_id=site_a.id, code="C30-A", name="C30 standard", grade="C30")
        recipe_a2 = Recipe(site_id=site_a.id, code="C40-A", name="C40 high strength", grade="C40")
        recipe_b1 = Recipe(site_id=site_b.id, code="C30-B", name="C30 standard", grade="C30")
        archived = Recipe(
            site_id=site_a.id,
            code="C20-OLD",
            name="Retired C20",
            grade="C20",
            deleted_at=datetime.now(timezone.utc),
        )
        session.add_all([recipe_a1, recipe_a2, recipe_b1, archived])
        await session.flush()

        data = SeedData(
            site_a=site_a.id,
            site_b=site_b.id,
            recipe_a1=recipe_a1.id,
            recipe_a2=recipe_a2.id,
            recipe_b1=recipe_b1.id,
            archived_recipe=archived.id,
        )
        await session.commit()

    return data


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory, seed) -> AsyncGenerator[AsyncSession, None]:
    """
    Session used directly by repository and service tests.

    Yields:
        AsyncSession: Session on the seeded database, rolled back afterwards
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    return Settings(environment="test", database_url=TEST_DATABASE_URL)


@pytest_asyncio.fixture(scope="function")
async def async_client(session_factory, seed) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an asynchronous test client for FastAPI application.

    Each request gets its own session that commits on success and rolls
    back on error, mirroring the production dependency.

    Yields:
        AsyncClient: Asynchronous test client for FastAPI app

    Example:
        async def test_health_endpoint_async(async_client):
            response = await async_client.get("/health")
            assert response.status_code == 200
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_client() -> Generator[TestClient, None, None]:
    """
    Create a synchronous test client for FastAPI application.

    Suitable for endpoints that do not touch the order tables.

    Example:
        def test_health_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    with TestClient(app) as client:
        yield client
