"""Tests for the screenings API endpoint."""

from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from showreel.models import Cinema, Film, Screening

SCRAPED = datetime(2030, 2, 1, tzinfo=timezone.utc)


def screening(film_id: str, cinema_id: str, day: int, hour: int, **extra) -> Screening:
    return Screening(
        film_id=film_id,
        cinema_id=cinema_id,
        start_time=datetime(2030, 2, day, hour, 0, tzinfo=timezone.utc),
        booking_url=f"https://example.com/{cinema_id}/{film_id}/{day}-{hour}",
        scraped_at=SCRAPED,
        **extra,
    )


@pytest.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        session.add_all(
            [
                Cinema(id="rio-dalston", name="Rio Cinema"),
                Cinema(id="prince-charles", name="Prince Charles Cinema"),
                Film(id="vertigo-1958", title="Vertigo", normalized_title="vertigo", year=1958, is_repertory=True),
                Film(id="anora-2024", title="Anora", normalized_title="anora", year=2024),
            ]
        )
        await session.flush()
        session.add_all(
            [
                screening("vertigo-1958", "rio-dalston", 20, 18),
                screening("anora-2024", "rio-dalston", 20, 20),
                screening("anora-2024", "prince-charles", 21, 19, format="35mm", event_type="q_and_a"),
                screening("anora-2024", "prince-charles", 22, 21),
                screening("anora-2024", "rio-dalston", 28, 20),
            ]
        )
        await session.commit()


async def get(app: FastAPI, url: str):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(url)


@pytest.mark.usefixtures("seeded")
class TestScreenings:
    async def test_groups_by_film_and_cinema(self, test_app: FastAPI) -> None:
        response = await get(test_app, "/api/screenings?date_from=2030-02-20&date_to=2030-02-22")
        assert response.status_code == 200
        data = response.json()

        assert data["total_films"] == 2
        assert data["total_screenings"] == 4
        anora, vertigo = data["films"]
        assert anora["film"]["title"] == "Anora"
        assert anora["film"]["screening_count"] == 3
        assert [c["cinema"]["id"] for c in anora["cinemas"]] == ["rio-dalston", "prince-charles"]
        assert vertigo["film"]["screening_count"] == 1
        assert vertigo["film"]["is_repertory"] is True

    async def test_times_are_sorted_and_carry_attributes(self, test_app: FastAPI) -> None:
        data = (await get(test_app, "/api/screenings?date_from=2030-02-20&date_to=2030-02-22")).json()
        prince_charles = data["films"][0]["cinemas"][1]
        first, second = prince_charles["times"]
        assert datetime.fromisoformat(first["start_time"]) == datetime(2030, 2, 21, 19, tzinfo=timezone.utc)
        assert (first["format"], first["event_type"]) == ("35mm", "q_and_a")
        assert datetime.fromisoformat(second["start_time"]) < datetime(2030, 2, 23, tzinfo=timezone.utc)

    async def test_date_to_is_inclusive(self, test_app: FastAPI) -> None:
        data = (await get(test_app, "/api/screenings?date_from=2030-02-28&date_to=2030-02-28")).json()
        assert data["total_screenings"] == 1
        assert data["query"] == {
            "date_from": "2030-02-28",
            "date_to": "2030-02-28",
            "cinema_id": None,
            "film_id": None,
        }

    async def test_default_range_is_a_week(self, test_app: FastAPI) -> None:
        data = (await get(test_app, "/api/screenings?date_from=2030-02-20")).json()
        assert data["query"]["date_to"] == "2030-02-27"
        assert data["total_screenings"] == 4

    async def test_filters(self, test_app: FastAPI) -> None:
        url = "/api/screenings?date_from=2030-02-20&date_to=2030-02-28"
        by_cinema = (await get(test_app, f"{url}&cinema_id=prince-charles")).json()
        assert by_cinema["total_screenings"] == 2

        by_film = (await get(test_app, f"{url}&film_id=vertigo-1958")).json()
        assert [f["film"]["id"] for f in by_film["films"]] == ["vertigo-1958"]

    async def test_empty_range(self, test_app: FastAPI) -> None:
        data = (await get(test_app, "/api/screenings?date_from=2031-01-01&date_to=2031-01-02")).json()
        assert data["films"] == []
        assert data["total_screenings"] == 0

    async def test_reversed_range_is_rejected(self, test_app: FastAPI) -> None:
        response = await get(test_app, "/api/screenings?date_from=2030-02-22&date_to=2030-02-20")
        assert response.status_code == 422
