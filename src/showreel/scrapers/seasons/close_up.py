"""Close-Up Film Centre seasons.

Close-Up has no seasons page. Each show's ``film_url`` carries its season
as a path segment (``/film_programmes/2025/close-up-on-stanley-kubrick/lolita``),
so seasons are rebuilt by grouping the homepage's embedded shows.
"""

import json
import logging
import re

from showreel.scrapers.embedded_json import extract_quoted_json
from showreel.scrapers.models import RawSeason, RawSeasonFilm, SeasonScraperConfig
from showreel.scrapers.seasons.base import BaseSeasonScraper, extract_director_from_title

logger = logging.getLogger(__name__)

CLOSE_UP_SEASON_CONFIG = SeasonScraperConfig(
    cinema_id="close-up-cinema",
    base_url="https://www.closeupfilmcentre.com",
    seasons_path="/",
    delay_between_requests=1.0,
)

_SEASON_PATH_RE = re.compile(r"/film_programmes/(\d{4})/([^/]+)/")
_TITLE_YEAR_RE = re.compile(r"\((\d{4})\)")

# Path segments that are categories, not seasons
GENERIC_SLUGS = {
    "screenings", "events", "special-events", "talks",
    "courses", "workshops", "members", "membership",
}

_SMALL_WORDS = {"on", "of", "the", "a", "an", "and", "or", "in", "at"}


def slug_to_name(slug: str) -> str:
    """'close-up-on-stanley-kubrick' -> 'Close Up on Stanley Kubrick'"""
    words = []
    for index, word in enumerate(slug.split("-")):
        if index > 0 and word.lower() in _SMALL_WORDS:
            words.append(word.lower())
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


class CloseUpSeasonScraper(BaseSeasonScraper):
    config = CLOSE_UP_SEASON_CONFIG

    async def fetch_season_pages(self) -> list[str]:
        return [await self.fetch_url(self.config.base_url + self.config.seasons_path)]

    def parse_seasons(self, pages: list[str]) -> list[RawSeason]:
        try:
            shows = extract_quoted_json(pages[0], "shows") if pages else None
        except json.JSONDecodeError as e:
            logger.warning(f"Close-Up seasons: Failed to parse shows JSON: {e}")
            return []
        if not shows:
            logger.warning("Close-Up seasons: No shows found in page")
            return []

        grouped: dict[tuple[str, str], list[dict]] = {}
        for show in shows:
            match = _SEASON_PATH_RE.search(show.get("film_url") or "")
            if not match:
                continue
            year, slug = match.groups()
            if slug.lower() in GENERIC_SLUGS:
                continue
            grouped.setdefault((year, slug), []).append(show)

        logger.debug(f"Close-Up seasons: {len(grouped)} seasons from {len(shows)} shows")
        return [self._build_season(year, slug, group) for (year, slug), group in grouped.items()]

    def _build_season(self, year: str, slug: str, shows: list[dict]) -> RawSeason:
        name = slug_to_name(slug)
        films: dict[str, RawSeasonFilm] = {}

        for show in shows:
            title = (show.get("title") or "").strip()
            key = title.lower()
            if not title or key in films:
                continue
            film_year = _TITLE_YEAR_RE.search(title)
            films[key] = RawSeasonFilm(
                title=re.sub(r"\s*\(\d{4}\)\s*$", "", title),
                year=int(film_year.group(1)) if film_year else None,
                order_index=len(films),
                film_url=self.config.base_url + show["film_url"],
            )

        return RawSeason(
            name=name,
            website_url=f"{self.config.base_url}/film_programmes/{year}/{slug}/",
            source_cinema=self.config.cinema_id,
            films=list(films.values()),
            director_name=extract_director_from_title(name),
            source_id=f"{year}-{slug}",
        )
