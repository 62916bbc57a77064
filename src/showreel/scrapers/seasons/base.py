"""Base class for season scrapers."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod

import httpx

from showreel.config import settings
from showreel.scrapers.base import DEFAULT_HEADERS
from showreel.scrapers.models import RawSeason, SeasonScraperConfig

logger = logging.getLogger(__name__)

# Words that start season titles but are never a director's name
_COMMON_WORDS = {
    "the", "classic", "classics", "big", "screen", "new", "cinema", "film", "films",
    "movie", "movies", "season", "special", "series", "collection", "retrospective", "festival",
}


def extract_director_from_title(title: str) -> str | None:
    """
    Guess the director a season is devoted to.

    "Kurosawa: Master of Cinema" -> "Kurosawa"
    "The Films of Stanley Kubrick" -> "Stanley Kubrick"
    "Agnès Varda Retrospective" -> "Agnès Varda"
    """
    colon = re.match(r"^([^:]+):", title)
    if colon:
        name = colon.group(1).strip()
        if len(name.split()) <= 3 and name.lower() not in _COMMON_WORDS:
            return name

    films_of = re.search(r"(?:the\s+)?films\s+(?:of|by)\s+(.+)", title, re.IGNORECASE)
    if films_of:
        return films_of.group(1).strip()

    retro = re.match(r"^(.+?)\s+(?:season|retrospective|at\s+\d)", title, re.IGNORECASE)
    if retro:
        name = retro.group(1).strip()
        if len(name.split()) <= 3 and name.lower() not in _COMMON_WORDS:
            return name

    return None


class BaseSeasonScraper(ABC):
    """
    Scrapes curated seasons (retrospectives, strands) from one cinema.

    Same template as the screening adapters: fetch, parse, validate.
    """

    config: SeasonScraperConfig

    def __init__(self) -> None:
        self.client: httpx.AsyncClient | None = None

    async def scrape(self) -> list[RawSeason]:
        self.client = httpx.AsyncClient(
            timeout=settings.scrape_timeout,
            verify=False,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )
        try:
            pages = await self.fetch_season_pages()
            seasons = self.parse_seasons(pages)
        finally:
            await self.client.aclose()
            self.client = None

        valid = self.validate(seasons)
        logger.info(f"[{self.config.cinema_id}] Found {len(valid)} seasons")
        return valid

    @abstractmethod
    async def fetch_season_pages(self) -> list[str]:
        """Fetch the pages that list this cinema's seasons."""

    @abstractmethod
    def parse_seasons(self, pages: list[str]) -> list[RawSeason]:
        """Extract seasons from the fetched pages."""

    def validate(self, seasons: list[RawSeason]) -> list[RawSeason]:
        """Keep seasons with a name, a website URL and at least one titled film."""
        valid: list[RawSeason] = []
        for season in seasons:
            if not season.name.strip():
                logger.warning(f"[{self.config.cinema_id}] Skipping season with empty name")
                continue
            if not season.website_url.strip():
                logger.warning(f"[{self.config.cinema_id}] Skipping season {season.name!r}: no website URL")
                continue
            season.films = [film for film in season.films if film.title.strip()]
            if not season.films:
                logger.warning(f"[{self.config.cinema_id}] Skipping season {season.name!r}: no films")
                continue
            valid.append(season)
        return valid

    async def fetch_url(self, url: str) -> str:
        await asyncio.sleep(self.config.delay_between_requests)
        response = await self.client.get(url)
        response.raise_for_status()
        return response.text
