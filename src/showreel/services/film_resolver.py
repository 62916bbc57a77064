"""Resolve listing titles to canonical films, creating them when needed."""

import hashlib
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Film
from showreel.services.classifier import CONFIDENCE_LEVELS, TitleClassifier
from showreel.services.film_cache import FilmCache
from showreel.services.film_similarity import find_similar_film
from showreel.services.posters import PosterService
from showreel.services.tmdb_client import TMDbClient, TMDbFilmDetails
from showreel.utils.text import canonicalize, clean_film_title, slugify

logger = logging.getLogger(__name__)

# Film.id is String(150); leaves room for "-YYYY"
MAX_SLUG_LENGTH = 140


def is_repertory(year: int | None, today: datetime | None = None) -> bool:
    """Anything released before last year counts as repertory."""
    if not year:
        return False
    today = today or datetime.now(timezone.utc)
    return year < today.year - 1


def decade_for(year: int | None) -> str | None:
    return f"{year // 10 * 10}s" if year else None


class FilmResolver:
    """
    Service for matching cinema film titles to canonical film records.

    Uses a multi-stage matching process:
    1. Canonical-title lookup in the per-run film cache
    2. Fuzzy match against known films (classifier confirms borderline cases)
    3. TMDb match, reusing any film already holding that TMDb id
    4. Minimal film built from scraper-supplied fields
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: FilmCache,
        tmdb: TMDbClient | None = None,
        posters: PosterService | None = None,
        classifier: TitleClassifier | None = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.tmdb = tmdb or TMDbClient()
        self.classifier = classifier or TitleClassifier()
        self.posters = posters or PosterService(tmdb=self.tmdb, classifier=self.classifier)
        self._poster_attempts: set[str] = set()

    async def extract_title(self, raw_title: str) -> str:
        """
        Film title inside a listing title.

        The classifier result is used unless it came back with low
        confidence, in which case the regex cleaner decides.
        """
        extraction = await self.classifier.classify(raw_title)
        if extraction.confidence <= CONFIDENCE_LEVELS["low"] or not extraction.film_title.strip():
            return clean_film_title(raw_title)
        return extraction.film_title

    async def get_or_create_film(
        self,
        title: str,
        year: int | None = None,
        director: str | None = None,
        poster_url: str | None = None,
    ) -> Film:
        """
        Match a cleaned title to an existing film or create a new one.

        Args:
            title: Cleaned film title
            year: Release year supplied by the scraper
            director: Director supplied by the scraper
            poster_url: Poster URL supplied by the scraper

        Returns:
            Matched or newly created Film object
        """
        film = self.cache.get(title)
        if film:
            if not film.poster_url:
                await self._backfill_poster(film, poster_url)
            return film

        match = await find_similar_film(title, self.cache.films(), year=year, classifier=self.classifier)
        if match:
            self.cache.add(match.film, alias=title)
            return match.film

        film = await self._from_tmdb(title, year, director, poster_url)
        if film:
            return film

        return await self._create_minimal(title, year, director, poster_url)

    async def _from_tmdb(
        self,
        title: str,
        year: int | None,
        director: str | None,
        hint_url: str | None,
    ) -> Film | None:
        match = await self.tmdb.match_title(title, year, director)
        if not match:
            return None

        result = await self.session.execute(select(Film).where(Film.tmdb_id == match.tmdb_id))
        existing = result.scalar_one_or_none()
        if existing:
            logger.debug(f"TMDb id {match.tmdb_id} already held by {existing.id!r}")
            self.cache.add(existing, alias=title)
            return existing

        details = await self.tmdb.get_film_details(match.tmdb_id)
        if details is None:
            return None

        poster = details.poster_url
        if not poster:
            poster = await self._find_poster(details.title, details.year, details.imdb_id, details.tmdb_id, hint_url)

        film = await self._insert(self._film_from_details(details, title, poster), listing_title=title)
        logger.info(f"Created film from TMDb: {film.title} ({film.year})")
        return film

    def _film_from_details(self, details: TMDbFilmDetails, listing_title: str, poster: str | None) -> Film:
        title = details.title or listing_title
        return Film(
            id=self._generate_film_id(title, details.year),
            title=title,
            normalized_title=canonicalize(listing_title),
            original_title=details.original_title,
            year=details.year,
            tmdb_id=details.tmdb_id,
            imdb_id=details.imdb_id,
            directors=details.directors or None,
            cast=details.cast or None,
            genres=details.genres or None,
            countries=details.countries or None,
            languages=details.languages or None,
            runtime=details.runtime,
            certification=details.certification,
            synopsis=details.synopsis,
            tagline=details.tagline,
            poster_url=poster,
            backdrop_url=details.backdrop_url,
            tmdb_rating=details.rating,
            is_repertory=is_repertory(details.year),
            decade=decade_for(details.year),
        )

    async def _create_minimal(
        self,
        title: str,
        year: int | None,
        director: str | None,
        hint_url: str | None,
    ) -> Film:
        """Create a film when no TMDb match is found."""
        poster = hint_url or await self._find_poster(title, year, None, None, None)
        film = Film(
            id=self._generate_film_id(title, year),
            title=title,
            normalized_title=canonicalize(title),
            year=year,
            directors=[director] if director else None,
            poster_url=poster,
            is_repertory=False,
        )
        film = await self._insert(film, listing_title=title)
        logger.info(f"Created film without TMDb: {film.title}{' (with poster)' if poster else ''}")
        return film

    async def _insert(self, film: Film, listing_title: str) -> Film:
        # Same slug-year identity seen under a different listing title
        existing = await self.session.get(Film, film.id)
        if existing:
            logger.debug(f"Film {film.id!r} already exists, reusing.")
            self.cache.add(existing, alias=listing_title)
            return existing

        self.session.add(film)
        await self.session.flush()
        self.cache.add(film, alias=film.title)
        return film

    async def _find_poster(
        self,
        title: str,
        year: int | None,
        imdb_id: str | None,
        tmdb_id: int | None,
        hint_url: str | None,
    ) -> str | None:
        result = await self.posters.find_poster(title, year, imdb_id=imdb_id, tmdb_id=tmdb_id, hint_url=hint_url)
        if result.is_placeholder:
            return None
        logger.info(f"Found poster for '{title}' from {result.source.upper()}")
        return result.url

    async def _backfill_poster(self, film: Film, hint_url: str | None) -> None:
        if film.id in self._poster_attempts:
            return
        self._poster_attempts.add(film.id)

        poster = await self._find_poster(film.title, film.year, film.imdb_id, film.tmdb_id, hint_url)
        if poster:
            film.poster_url = poster
            await self.session.flush()
            logger.info(f"Updated poster for '{film.title}'")

    def _generate_film_id(self, title: str, year: int | None) -> str:
        """
        Generate a film ID from title and year.

        Slugs are cut to fit Film.id with a year suffix. Titles with nothing
        sluggable get a digest suffix so distinct films never share an id.
        """
        slug = slugify(title)[:MAX_SLUG_LENGTH].rstrip("-")
        if not slug:
            slug = f"untitled-{hashlib.sha1(canonicalize(title).encode()).hexdigest()[:10]}"
        if year:
            return f"{slug}-{year}"
        return slug
