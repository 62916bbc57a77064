"""Prince Charles Cinema scraper."""

import logging
import re
from datetime import date

from bs4 import BeautifulSoup, Tag

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.models import RawScreening, ScraperConfig
from showreel.utils.dates import combine_date_time, parse_screening_date, parse_screening_time

logger = logging.getLogger(__name__)

BASE_URL = "https://princecharlescinema.com"

PRINCE_CHARLES_CONFIG = ScraperConfig(
    cinema_id="prince-charles",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=2.0,
)

_BOOKING_ID_RE = re.compile(r"booknow/(\d+)")


def _format_from_classes(classes: list[str], default: str | None = None) -> str | None:
    joined = " ".join(classes)
    if "35mm" in joined:
        return "35mm"
    if "70mm" in joined:
        return "70mm"
    return default


def _event_from_classes(classes: list[str]) -> str | None:
    joined = " ".join(classes)
    if "sing-along" in joined:
        return "singalong"
    if "q-and-a" in joined:
        return "q_and_a"
    return None


class PrinceCharlesScraper(BaseScraper):
    """
    Scraper for Prince Charles Cinema.

    WordPress-based site with the jacro cinema plugin. Each film is a
    ``.jacro-event`` block whose ``ul.performance-list-items`` interleaves
    ``div.heading`` date headings with ``li`` showtimes.
    """

    config = PRINCE_CHARLES_CONFIG

    async def fetch_pages(self) -> list[str]:
        return [await self.fetch_url(f"{self.config.base_url}/whats-on/")]

    def parse_page(self, html: str) -> list[RawScreening]:
        soup = BeautifulSoup(html, "html.parser")
        screenings: list[RawScreening] = []

        jacro_events = soup.find_all("div", class_="jacro-event")
        logger.debug(f"Prince Charles: {len(jacro_events)} jacro-event containers")

        for event in jacro_events:
            try:
                screenings.extend(self._parse_film_block(event))
            except Exception as e:
                logger.warning(f"Prince Charles: Failed to parse jacro-event: {e}")

        return screenings

    def _parse_film_block(self, event: Tag) -> list[RawScreening]:
        film_link = event.find("a", class_="liveeventtitle")
        if not film_link:
            return []

        title = film_link.get_text(strip=True)
        if not title:
            return []

        default_format = _format_from_classes(event.get("class", []))
        screenings: list[RawScreening] = []

        for perf_list in event.find_all("ul", class_="performance-list-items"):
            current_date: date | None = None
            for child in perf_list.find_all(["div", "li"], recursive=False):
                if child.name == "div" and "heading" in child.get("class", []):
                    current_date = parse_screening_date(child.get_text(" ", strip=True))
                elif child.name == "li" and current_date:
                    screening = self._parse_showtime(child, title, current_date, default_format)
                    if screening:
                        screenings.append(screening)

        return screenings

    def _parse_showtime(
        self,
        li: Tag,
        title: str,
        show_date: date,
        default_format: str | None,
    ) -> RawScreening | None:
        book_link = li.find("a", class_="film_book_button")
        if not book_link:
            return None

        # Sold-out rows keep the button but swap its class
        if "soldfilm_book_button" in book_link.get("class", []):
            return None

        href = book_link.get("href")
        if not href:
            return None
        booking_url = self.absolute_url(href)

        time_span = book_link.find("span", class_="time")
        clock = parse_screening_time(time_span.get_text(strip=True) if time_span else "")
        if clock is None:
            return None

        li_classes = li.get("class", [])
        booking_id = _BOOKING_ID_RE.search(booking_url)

        return RawScreening(
            title=title,
            start_time=combine_date_time(show_date, clock),
            booking_url=booking_url,
            format=_format_from_classes(li_classes, default_format),
            event_type=_event_from_classes(li_classes),
            source_id=f"prince-charles-{booking_id.group(1)}" if booking_id else None,
        )
