"""Unit tests for the Close-Up Film Centre scraper."""

import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from showreel.scrapers.close_up import BASE_URL, CloseUpScraper

LONDON_TZ = ZoneInfo("Europe/London")

TEN = {
    "id": "101",
    "title": "Ten",
    "show_time": "2027-01-01 20:15:00",
    "status": "1",
    "blink": "https://www.closeupfilmcentre.com/booking/101",
    "film_url": "/film_programmes/2027/kiarostami/ten/",
    "booking_availability": "",
}


def make_html(shows: list[dict], headings: list[tuple[str, str]] | None = None) -> str:
    shows_js = json.dumps(shows).replace("'", "\\'")
    items = "".join(f'<h2><a href="{href}">{text}</a></h2>' for text, href in headings or [])
    return (
        f"<html><head><script>var shows ='{shows_js}';</script></head>"
        f'<body><div class="inner_block_3">{items}</div></body></html>'
    )


@pytest.fixture
def scraper() -> CloseUpScraper:
    return CloseUpScraper()


class TestShowsJson:
    def test_parses_show(self, scraper: CloseUpScraper) -> None:
        [screening] = scraper.parse_page(make_html([TEN]))
        assert screening.title == "Ten"
        assert screening.start_time == datetime(2027, 1, 1, 20, 15, tzinfo=LONDON_TZ)
        assert screening.booking_url == TEN["blink"]

    def test_inactive_show_is_skipped(self, scraper: CloseUpScraper) -> None:
        assert scraper.parse_page(make_html([{**TEN, "status": "0"}])) == []

    def test_falls_back_to_film_page(self, scraper: CloseUpScraper) -> None:
        [screening] = scraper.parse_page(make_html([{**TEN, "blink": ""}]))
        assert screening.booking_url == f"{BASE_URL}/film_programmes/2027/kiarostami/ten/"

    def test_sold_out(self, scraper: CloseUpScraper) -> None:
        [screening] = scraper.parse_page(make_html([{**TEN, "booking_availability": "sold_out"}]))
        assert screening.availability == "sold_out"

    def test_apostrophes_in_titles(self, scraper: CloseUpScraper) -> None:
        [screening] = scraper.parse_page(make_html([{**TEN, "title": "Where's My Friend's Home"}]))
        assert screening.title == "Where's My Friend's Home"


class TestListingHeadings:
    def test_heading_fills_gap(self, scraper: CloseUpScraper) -> None:
        html = make_html([], [("Fri 8 January 2027, 6.30pm: Close-Up", "/film_programmes/2027/kiarostami/close-up/")])
        [screening] = scraper.parse_page(html)
        assert screening.title == "Close-Up"
        assert screening.start_time == datetime(2027, 1, 8, 18, 30, tzinfo=LONDON_TZ)
        assert screening.booking_url == f"{BASE_URL}/film_programmes/2027/kiarostami/close-up/"

    def test_same_show_in_both_sources_is_emitted_once(self, scraper: CloseUpScraper) -> None:
        html = make_html([TEN], [("Fri 1 January 2027, 8.15pm: Ten", "/film/ten")])
        screenings = scraper.parse_page(html)
        assert len(screenings) == 1
        assert screenings[0].booking_url == TEN["blink"]

    def test_heading_without_time_is_ignored(self, scraper: CloseUpScraper) -> None:
        html = make_html([], [("Kiarostami season", "/film_programmes/2027/kiarostami/")])
        assert scraper.parse_page(html) == []
