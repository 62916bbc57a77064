"""Close-Up Film Centre scraper.

The homepage carries every upcoming show twice: as a JSON array wrapped in
a JavaScript string (``var shows ='[...]';``) and as human-readable
listing headings ("Thu 1 January, 8.15pm: Ten"). The JSON is preferred;
the headings fill gaps for shows the JSON omits.
"""

import json
import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.embedded_json import extract_quoted_json
from showreel.scrapers.models import RawScreening, ScraperConfig
from showreel.utils.dates import combine_date_time, parse_screening_date, parse_screening_time

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

BASE_URL = "https://www.closeupfilmcentre.com"

CLOSE_UP_CONFIG = ScraperConfig(
    cinema_id="close-up-cinema",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=1.0,
)

# "Thu 1 January, 8.15pm: Ten" -> ("Thu 1 January, 8.15pm", "Ten")
_HEADING_RE = re.compile(r"^(.+?\d{1,2}(?:[.:]\d{2})?\s*[ap]m)\s*:\s*(.+)$", re.IGNORECASE)


class CloseUpScraper(BaseScraper):
    """Scraper for Close-Up Film Centre, Shoreditch."""

    config = CLOSE_UP_CONFIG

    async def fetch_pages(self) -> list[str]:
        return [await self.fetch_url(self.config.base_url)]

    def parse_page(self, html: str) -> list[RawScreening]:
        # Dedupe spans both sources on the page
        self._seen: set[str] = set()
        screenings = self._parse_shows_json(html)
        screenings.extend(self._parse_listing_headings(html))
        return screenings

    def _claim(self, title: str, start_time: datetime) -> bool:
        """Return False if this title/time was already emitted."""
        key = f"{title.strip().lower()}|{start_time.isoformat()}"
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def _parse_shows_json(self, html: str) -> list[RawScreening]:
        try:
            shows = extract_quoted_json(html, "shows")
        except json.JSONDecodeError as e:
            logger.warning(f"Close-Up: Failed to parse shows JSON: {e}")
            return []
        if not shows:
            return []

        screenings: list[RawScreening] = []
        for show in shows:
            try:
                screening = self._parse_show(show)
            except Exception as e:
                logger.warning(f"Close-Up: Failed to parse show {show.get('id')}: {e}")
                continue
            if screening and self._claim(screening.title, screening.start_time):
                screenings.append(screening)

        logger.debug(f"Close-Up: {len(screenings)} screenings from JSON")
        return screenings

    def _parse_show(self, show: dict) -> RawScreening | None:
        title = (show.get("title") or "").strip()
        show_time = show.get("show_time") or ""
        if not title or not show_time or str(show.get("status")) != "1":
            return None

        try:
            start_time = datetime.strptime(show_time, "%Y-%m-%d %H:%M:%S").replace(
                tzinfo=LONDON_TZ
            )
        except ValueError:
            return None

        booking_url = show.get("blink") or ""
        if not booking_url and show.get("film_url"):
            booking_url = self.absolute_url(show["film_url"])

        availability = None
        if show.get("booking_availability") == "sold_out":
            availability = "sold_out"

        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=booking_url,
            availability=availability,
            source_id=f"close-up-{show.get('id')}-{start_time.isoformat()}",
        )

    def _parse_listing_headings(self, html: str) -> list[RawScreening]:
        soup = BeautifulSoup(html, "html.parser")
        screenings: list[RawScreening] = []

        for link in soup.select(".inner_block_3 h2 a"):
            match = _HEADING_RE.match(link.get_text(" ", strip=True))
            if not match:
                continue

            when, title = match.groups()
            day = parse_screening_date(when)
            clock = parse_screening_time(when)
            if day is None or clock is None:
                continue

            start_time = combine_date_time(day, clock)
            if not self._claim(title, start_time):
                continue

            href = link.get("href") or ""
            screenings.append(
                RawScreening(
                    title=title.strip(),
                    start_time=start_time,
                    booking_url=self.absolute_url(href) if href else None,
                    source_id=f"close-up-html-{start_time.isoformat()}",
                )
            )

        return screenings
