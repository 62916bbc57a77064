"""Persist scraped seasons and attach the films they list."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from rapidfuzz.distance import Levenshtein
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Film, Season, SeasonFilm
from showreel.scrapers.models import RawSeason, RawSeasonFilm
from showreel.services.season_linker import SeasonLinker
from showreel.utils.text import canonicalize, slugify, strip_year

logger = logging.getLogger(__name__)

DEFAULT_SEASON_DAYS = 90


@dataclass
class SeasonSaveResult:
    created: int = 0
    updated: int = 0
    films_linked: int = 0
    films_unmatched: int = 0
    season_slugs: list[str] = field(default_factory=list)


@dataclass
class _CachedFilm:
    id: str
    title: str
    key: str
    year: int | None
    directors: list[str]


def titles_match(a: str, b: str) -> bool:
    """Equal, prefix either way, or under 20% edits for titles of similar length."""
    if not a or not b:
        return False
    if a == b or a.startswith(b) or b.startswith(a):
        return True
    if abs(len(a) - len(b)) <= 3:
        return Levenshtein.distance(a, b) / max(len(a), len(b)) < 0.2
    return False


def season_slug(raw: RawSeason) -> str:
    return f"{slugify(raw.name)}-{raw.source_cinema}"


def find_matching_film(raw_film: RawSeasonFilm, films: dict[str, _CachedFilm]) -> _CachedFilm | None:
    """
    Try, in order: exact canonical title (year permitting), title without a
    trailing year, same year with a matching title, same director with a
    matching title.
    """
    key = canonicalize(raw_film.title)

    exact = films.get(key)
    if exact and not (raw_film.year and exact.year and raw_film.year != exact.year):
        return exact

    stripped = canonicalize(strip_year(raw_film.title))
    if stripped != key and stripped in films:
        return films[stripped]

    if raw_film.year:
        for film in films.values():
            if film.year == raw_film.year and titles_match(key, film.key):
                return film

    if raw_film.director:
        director = raw_film.director.lower()
        for film in films.values():
            if any(director in d.lower() for d in film.directors) and titles_match(key, film.key):
                return film

    return None


async def _load_films(session: AsyncSession) -> dict[str, _CachedFilm]:
    result = await session.execute(select(Film.id, Film.title, Film.year, Film.directors))
    films: dict[str, _CachedFilm] = {}
    for film_id, title, year, directors in result.all():
        key = canonicalize(title)
        films[key] = _CachedFilm(id=film_id, title=title, key=key, year=year, directors=directors or [])
    return films


async def _save_season(
    session: AsyncSession,
    raw: RawSeason,
    films: dict[str, _CachedFilm],
    now: datetime,
) -> tuple[str, bool, int, int]:
    slug = season_slug(raw)
    result = await session.execute(select(Season).where(Season.slug == slug))
    season = result.scalar_one_or_none()
    is_new = season is None

    today = now.date()
    if season is None:
        season = Season(id=str(uuid.uuid4()), slug=slug, name=raw.name)
        session.add(season)

    season.name = raw.name
    season.description = raw.description
    season.director_name = raw.director_name
    season.website_url = raw.website_url
    season.poster_url = raw.poster_url
    season.start_date = raw.start_date or season.start_date or today
    season.end_date = raw.end_date or season.end_date or today + timedelta(days=DEFAULT_SEASON_DAYS)
    season.source_cinemas = sorted(set(season.source_cinemas or []) | {raw.source_cinema})
    season.raw_film_titles = [f.title for f in raw.films]
    season.is_active = True
    season.scraped_at = now
    await session.flush()

    # Links for this season are rebuilt from the current film list
    await session.execute(delete(SeasonFilm).where(SeasonFilm.season_id == season.id))

    linked = unmatched = 0
    seen: set[str] = set()
    for index, raw_film in enumerate(raw.films):
        film = find_matching_film(raw_film, films)
        if film is None:
            unmatched += 1
            logger.info(
                f"Could not match season film: '{raw_film.title}'"
                f"{f' ({raw_film.year})' if raw_film.year else ''}"
            )
            continue
        if film.id in seen:
            continue
        seen.add(film.id)
        session.add(
            SeasonFilm(
                season_id=season.id,
                film_id=film.id,
                order_index=raw_film.order_index if raw_film.order_index is not None else index,
            )
        )
        linked += 1
    await session.flush()

    logger.info(f"{'Created' if is_new else 'Updated'} season: {raw.name}")
    return slug, is_new, linked, unmatched


async def process_seasons(
    session: AsyncSession,
    raw_seasons: list[RawSeason],
    linker: SeasonLinker | None = None,
    now: datetime | None = None,
) -> SeasonSaveResult:
    """
    Create or update seasons and rebuild their film links.

    Unnamed seasons are skipped. Database errors propagate so the caller's
    session rolls back as a whole. The linker's cache is invalidated so the
    next screening pipeline run sees the new titles.
    """
    now = now or datetime.now(timezone.utc)
    result = SeasonSaveResult()
    films = await _load_films(session)
    logger.info(f"Processing {len(raw_seasons)} seasons against {len(films)} films")

    for raw in raw_seasons:
        if not raw.name.strip():
            logger.warning(f"Skipping unnamed season from {raw.source_cinema}")
            continue
        slug, is_new, linked, unmatched = await _save_season(session, raw, films, now)

        result.season_slugs.append(slug)
        if is_new:
            result.created += 1
        else:
            result.updated += 1
        result.films_linked += linked
        result.films_unmatched += unmatched

    if linker is not None:
        linker.invalidate()

    logger.info(
        f"Seasons complete: {result.created} created, {result.updated} updated, "
        f"{result.films_linked} films linked, {result.films_unmatched} unmatched"
    )
    return result

