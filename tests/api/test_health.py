"""Tests for the health check endpoint."""

from datetime import datetime, timezone

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from showreel.models import Cinema


async def get_health(app: FastAPI) -> dict:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 200
    return response.json()


async def test_health_without_scrapes(test_app: FastAPI) -> None:
    assert await get_health(test_app) == {"status": "ok", "last_scraped_at": None}


async def test_health_reports_latest_scrape(
    test_app: FastAPI, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    latest = datetime(2030, 2, 20, 6, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        session.add_all(
            [
                Cinema(id="rio-dalston", name="Rio Cinema", last_scraped_at=latest),
                Cinema(id="close-up-cinema", name="Close-Up", last_scraped_at=datetime(2030, 2, 19, tzinfo=timezone.utc)),
                Cinema(id="lexi", name="The Lexi"),
            ]
        )
        await session.commit()

    data = await get_health(test_app)
    assert data["status"] == "ok"
    assert datetime.fromisoformat(data["last_scraped_at"]) == latest
