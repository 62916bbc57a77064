"""Link films to the seasons that list them.

Seasons keep their member titles exactly as the cinema printed them
(``Season.raw_film_titles``), so a film resolved weeks after the season was
scraped can still be attached.
"""

import logging
import time
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.config import settings
from showreel.models import Film, Season, SeasonFilm
from showreel.utils.text import canonicalize, strip_year

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.85


def season_title_key(title: str) -> str:
    return canonicalize(strip_year(title))


def titles_match(film_key: str, season_key: str) -> bool:
    """Exact, prefix in either direction, or normalised edit similarity >= 0.85."""
    if not film_key or not season_key:
        return False
    if film_key == season_key:
        return True
    if film_key.startswith(season_key) or season_key.startswith(film_key):
        return True
    return Levenshtein.normalized_similarity(film_key, season_key) >= SIMILARITY_THRESHOLD


@dataclass
class CachedSeason:
    id: str
    name: str
    title_keys: set[str] = field(default_factory=set)

    def matches(self, film_key: str) -> bool:
        if film_key in self.title_keys:
            return True
        return any(titles_match(film_key, key) for key in self.title_keys)


class SeasonLinker:
    """
    Active-season cache plus link creation.

    The cache is reloaded after ``ttl_seconds`` or after ``invalidate()``,
    which season scrapers call once they have written new seasons.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.season_cache_ttl
        self._seasons: list[CachedSeason] | None = None
        self._loaded_at: float | None = None

    def invalidate(self) -> None:
        self._seasons = None
        self._loaded_at = None

    async def _load(self, session: AsyncSession) -> list[CachedSeason]:
        if (
            self._seasons is not None
            and self._loaded_at is not None
            and time.monotonic() - self._loaded_at < self.ttl_seconds
        ):
            return self._seasons

        result = await session.execute(
            select(Season.id, Season.name, Season.raw_film_titles).where(Season.is_active.is_(True))
        )
        self._seasons = [
            CachedSeason(
                id=season_id,
                name=name,
                title_keys={season_title_key(t) for t in raw_titles or [] if season_title_key(t)},
            )
            for season_id, name, raw_titles in result.all()
        ]
        self._loaded_at = time.monotonic()
        logger.debug(f"Loaded {len(self._seasons)} active seasons")
        return self._seasons

    async def _link(self, session: AsyncSession, season_id: str, film_id: str) -> bool:
        existing = await session.get(SeasonFilm, (season_id, film_id))
        if existing is not None:
            return False
        session.add(SeasonFilm(season_id=season_id, film_id=film_id))
        await session.flush()
        return True

    async def link_film_to_matching_seasons(self, session: AsyncSession, film_id: str, title: str) -> int:
        """
        Attach ``film_id`` to every active season listing ``title``.

        Returns:
            Number of new links created
        """
        seasons = await self._load(session)
        if not seasons:
            return 0

        film_key = season_title_key(title)
        linked = 0
        for season in seasons:
            if not season.matches(film_key):
                continue
            if await self._link(session, season.id, film_id):
                linked += 1
                logger.info(f"Linked '{title}' to season '{season.name}'")
        return linked

    async def relink_season_films(self, session: AsyncSession, season_id: str) -> int:
        """Link every known film matching one season's raw titles."""
        season = await session.get(Season, season_id)
        if season is None:
            logger.warning(f"Season not found: {season_id}")
            return 0

        keys = {season_title_key(t) for t in season.raw_film_titles or []}
        keys.discard("")
        if not keys:
            return 0

        result = await session.execute(select(Film.id, Film.title))
        linked = 0
        for film_id, film_title in result.all():
            film_key = season_title_key(film_title)
            if not any(titles_match(film_key, key) for key in keys):
                continue
            if await self._link(session, season_id, film_id):
                linked += 1
                logger.info(f"Linked '{film_title}' to season '{season.name}'")
        return linked
