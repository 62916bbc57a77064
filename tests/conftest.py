"""Shared test fixtures."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from showreel.api.routes import cinemas, health, screenings
from showreel.database import get_db, make_session_factory
from showreel.models import Base
from showreel.services.classifier import EventClassifier, TitleClassifier
from showreel.services.posters import FanartClient, OMDbClient, PosterService
from showreel.services.tmdb_client import TMDbClient


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite database with the full schema, one per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def offline_services() -> dict:
    """Enrichment services with every external API switched off."""
    tmdb = TMDbClient(api_key="")
    classifier = TitleClassifier(api_key="")
    return {
        "tmdb": tmdb,
        "classifier": classifier,
        "event_classifier": EventClassifier(api_key=""),
        "posters": PosterService(
            tmdb=tmdb,
            omdb=OMDbClient(api_key=""),
            fanart=FanartClient(api_key=""),
            classifier=classifier,
        ),
    }


@pytest.fixture
def test_app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Minimal FastAPI app without the APScheduler lifespan, for API tests."""
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(cinemas.router, prefix="/api")
    app.include_router(screenings.router, prefix="/api")

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app
