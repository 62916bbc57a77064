"""Lexi Cinema (Kensal Rise) scraper.

The listings are rendered client-side, so the page is loaded in the shared
browser and the materialised HTML is parsed with an ordered chain of
selector strategies. The first strategy that produces screenings wins.
"""

import logging
import re
from collections.abc import Callable
from datetime import datetime

from bs4 import BeautifulSoup, Tag

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.models import RawScreening, ScraperConfig
from showreel.utils.dates import LONDON_TZ, MONTHS, combine_date_time, parse_screening_date, parse_screening_time

logger = logging.getLogger(__name__)

BASE_URL = "https://thelexicinema.co.uk"
HOME_URL = f"{BASE_URL}/TheLexiCinema.dll/Home"

DEFAULT_HOUR = 14

LEXI_CONFIG = ScraperConfig(
    cinema_id="lexi",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=2.0,
)

# Homepage section headings that also sit inside WhatsOn links
_SECTION_HEADING_RE = re.compile(
    r"^(Films?|Family Fun|Event|Theatre|Black History|Talking Pictures|Main Features|"
    r"Q&As|Spotlight|Women of|Baby-Friendly|Audio|HOH|Relaxed|Seasons|Contact|Subscribe)",
    re.IGNORECASE,
)

# "Mon 22 Dec 15:00" or "Mon 22 Dec"
_LEXI_DATE_RE = re.compile(
    r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+(\d{1,2})\s+"
    r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)(?:\s+(\d{1,2}):(\d{2}))?",
    re.IGNORECASE,
)

_CARD_SELECTOR = ".film, .event, .screening, article, .programme-item, [class*='card'], [class*='film']"
_CARD_TITLE_SELECTOR = "h2, h3, h4, .title, .film-title, [class*='title']"
_CARD_TIME_SELECTOR = "a[href*='book'], a[href*='Book'], .showtime, .time, [class*='time']"


def parse_lexi_datetime(text: str, now: datetime | None = None) -> datetime | None:
    """
    Parse "Mon 22 Dec 15:00" or "Mon 22 Dec" (14:00 assumed).

    The site prints no year: a result already in the past is moved to
    next year.
    """
    match = _LEXI_DATE_RE.search(text)
    if not match:
        return None

    now = now or datetime.now(LONDON_TZ)
    day = int(match.group(2))
    month = MONTHS[match.group(3).lower()]
    hour = int(match.group(4)) if match.group(4) else DEFAULT_HOUR
    minute = int(match.group(5)) if match.group(5) else 0

    try:
        result = datetime(now.year, month, day, hour, minute, tzinfo=LONDON_TZ)
        if result < now:
            result = result.replace(year=now.year + 1)
    except ValueError:
        return None
    return result


def clean_lexi_title(title: str) -> str:
    title = re.sub(r"\s*\(\d{4}\)\s*$", "", title)
    title = re.sub(r"\s*\+\s*(Q\s*&?\s*A|intro|discussion).*$", "", title, flags=re.IGNORECASE)
    return title.strip()


class LexiScraper(BaseScraper):
    """Scraper for The Lexi Cinema."""

    config = LEXI_CONFIG

    async def fetch_pages(self) -> list[str]:
        browser = await self.get_browser()
        return [await browser.render(HOME_URL, wait_for='a[href*="WhatsOn?f="]', settle=3.0)]

    @property
    def strategies(self) -> list[Callable[[BeautifulSoup], list[RawScreening]]]:
        return [self._parse_detail_links, self._parse_film_cards]

    def parse_page(self, html: str) -> list[RawScreening]:
        soup = BeautifulSoup(html, "html.parser")
        for strategy in self.strategies:
            screenings = strategy(soup)
            if screenings:
                logger.debug(f"Lexi: {strategy.__name__} matched {len(screenings)} screenings")
                return screenings
        logger.warning("Lexi: No selector strategy matched the page")
        return []

    def _screening(self, title: str, start_time: datetime, href: str) -> RawScreening:
        title = clean_lexi_title(title)
        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=self.absolute_url(href) if href else self.config.base_url,
            source_id=f"lexi-{title.lower().replace(' ', '-')}-{start_time.isoformat()}",
        )

    def _parse_detail_links(self, soup: BeautifulSoup) -> list[RawScreening]:
        """Film detail links with an h3 title; the date sits in the parent's text."""
        screenings: list[RawScreening] = []
        seen: set[str] = set()

        for link in soup.select('a[href*="WhatsOn?f="]'):
            heading = link.find("h3")
            if heading is None:
                continue

            title = heading.get_text(strip=True)
            if len(title) < 2 or _SECTION_HEADING_RE.match(title) or title in seen:
                continue
            seen.add(title)

            container = link.parent if isinstance(link.parent, Tag) else link
            start_time = parse_lexi_datetime(container.get_text(" ", strip=True))
            if start_time is None:
                continue

            screenings.append(self._screening(title, start_time, link.get("href") or ""))

        return screenings

    def _parse_film_cards(self, soup: BeautifulSoup) -> list[RawScreening]:
        """Generic card containers with per-showtime links."""
        screenings: list[RawScreening] = []

        for card in soup.select(_CARD_SELECTOR):
            title_el = card.select_one(_CARD_TITLE_SELECTOR)
            title = title_el.get_text(strip=True) if title_el else ""
            if len(title) < 2:
                continue

            card_text = card.get_text(" ", strip=True)
            show_date = parse_screening_date(card_text)
            if show_date is None:
                continue

            first_link = card.find("a")
            fallback_href = first_link.get("href", "") if first_link else ""

            for time_el in card.select(_CARD_TIME_SELECTOR):
                clock = parse_screening_time(time_el.get_text(strip=True))
                if clock is None:
                    continue
                href = time_el.get("href") or fallback_href
                screenings.append(self._screening(title, combine_date_time(show_date, clock), href))

        return screenings
