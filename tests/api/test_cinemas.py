"""Tests for the cinemas API endpoint."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from showreel.models import Cinema


@pytest.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        session.add_all(
            [
                Cinema(id="rio-dalston", name="Rio Cinema", area="Dalston", postcode="E8 2PB"),
                Cinema(id="everyman-hampstead", name="Everyman Hampstead", chain="everyman"),
                Cinema(
                    id="everyman-baker-street",
                    name="Everyman Baker Street",
                    chain="everyman",
                    features=["bar", "sofas"],
                ),
            ]
        )
        await session.commit()


async def get(app: FastAPI, url: str):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(url)


@pytest.mark.usefixtures("seeded")
class TestCinemas:
    async def test_lists_all_cinemas_by_name(self, test_app: FastAPI) -> None:
        response = await get(test_app, "/api/cinemas")
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [
            "everyman-baker-street",
            "everyman-hampstead",
            "rio-dalston",
        ]

    async def test_filters_by_chain(self, test_app: FastAPI) -> None:
        response = await get(test_app, "/api/cinemas?chain=everyman")
        assert {c["id"] for c in response.json()} == {"everyman-hampstead", "everyman-baker-street"}

    async def test_unknown_chain(self, test_app: FastAPI) -> None:
        response = await get(test_app, "/api/cinemas?chain=curzon")
        assert response.status_code == 200
        assert response.json() == []

    async def test_response_fields(self, test_app: FastAPI) -> None:
        rio = next(c for c in (await get(test_app, "/api/cinemas")).json() if c["id"] == "rio-dalston")
        assert rio["name"] == "Rio Cinema"
        assert rio["area"] == "Dalston"
        assert rio["postcode"] == "E8 2PB"
        assert rio["chain"] is None
        assert rio["last_scraped_at"] is None
