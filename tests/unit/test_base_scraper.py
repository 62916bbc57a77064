"""Tests for the shared scrape template in BaseScraper."""

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.models import RawScreening, ScraperConfig

FUTURE = datetime(2030, 3, 1, 19, 30, tzinfo=timezone.utc)


def raw(source_id: str, start_time: datetime = FUTURE, title: str = "Vertigo") -> RawScreening:
    return RawScreening(
        title=title,
        start_time=start_time,
        booking_url=f"https://cinema.example/book/{source_id}",
        source_id=source_id,
    )


class StubScraper(BaseScraper):
    config = ScraperConfig(cinema_id="stub-cinema", base_url="https://cinema.example", delay_between_requests=0)

    def __init__(self, pages: list[Any] | Exception, **kwargs) -> None:
        super().__init__(**kwargs)
        self.pages = pages

    async def fetch_pages(self) -> list[Any]:
        if isinstance(self.pages, Exception):
            raise self.pages
        return self.pages

    def parse_page(self, page: Any) -> list[RawScreening]:
        if page == "broken":
            raise ValueError("unexpected markup")
        return page


class TestScrapeTemplate:
    async def test_parse_validate_dedupe(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(days=1)
        scraper = StubScraper([[raw("1"), raw("1")], "broken", [raw("2", start_time=past), raw("3")]])

        screenings = await scraper.scrape()

        assert [s.source_id for s in screenings] == ["1", "3"]
        assert scraper.rejected_count == 1
        assert scraper.client is None

    async def test_cleanup_runs_when_fetch_fails(self) -> None:
        scraper = StubScraper(httpx.ConnectError("refused"))
        with pytest.raises(httpx.ConnectError):
            await scraper.scrape()
        assert scraper.client is None

    def test_records_without_source_id_are_kept(self) -> None:
        scraper = StubScraper([])
        first, second = raw("x"), raw("y", title="Psycho")
        first.source_id = second.source_id = None
        assert scraper.validate([first, second]) == [first, second]

    def test_config_override(self) -> None:
        config = ScraperConfig(cinema_id="other-cinema", base_url="https://other.example")
        assert StubScraper([], config=config).cinema_id == "other-cinema"


class TestHealthCheck:
    @patch("httpx.AsyncClient")
    async def test_healthy(self, mock_client_cls: MagicMock) -> None:
        client = mock_client_cls.return_value.__aenter__.return_value
        client.head = AsyncMock(return_value=MagicMock(status_code=200))

        assert await StubScraper([]).health_check() is True
        client.head.assert_awaited_once_with("https://cinema.example")

    @patch("httpx.AsyncClient")
    async def test_error_status(self, mock_client_cls: MagicMock) -> None:
        client = mock_client_cls.return_value.__aenter__.return_value
        client.head = AsyncMock(return_value=MagicMock(status_code=503))
        assert await StubScraper([]).health_check() is False

    @patch("httpx.AsyncClient")
    async def test_network_error(self, mock_client_cls: MagicMock) -> None:
        client = mock_client_cls.return_value.__aenter__.return_value
        client.head = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))
        assert await StubScraper([]).health_check() is False


class TestRequests:
    async def test_every_request_waits_first(self) -> None:
        scraper = StubScraper([])
        scraper.client = MagicMock()
        scraper.client.request = AsyncMock(return_value=MagicMock(text="<html></html>"))

        with patch.object(scraper, "delay", new=AsyncMock()) as delay:
            assert await scraper.fetch_url("https://cinema.example/a") == "<html></html>"
            await scraper.fetch_url("https://cinema.example/b")

        assert delay.await_count == 2
        scraper.client.request.assert_awaited_with("GET", "https://cinema.example/b")

    async def test_error_status_raises(self) -> None:
        scraper = StubScraper([])
        failing = MagicMock()
        failing.raise_for_status.side_effect = httpx.HTTPStatusError(
            "503", request=MagicMock(), response=MagicMock()
        )
        scraper.client = MagicMock()
        scraper.client.request = AsyncMock(return_value=failing)

        with pytest.raises(httpx.HTTPStatusError):
            await scraper.fetch_url("https://cinema.example/a")

    @pytest.mark.parametrize(
        ("href", "expected"),
        [
            ("/film/1", "https://cinema.example/film/1"),
            ("film/1", "https://cinema.example/film/1"),
            ("https://tickets.example/1", "https://tickets.example/1"),
        ],
    )
    def test_absolute_url(self, href: str, expected: str) -> None:
        assert StubScraper([]).absolute_url(href) == expected
