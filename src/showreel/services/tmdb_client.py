"""TMDb API client for fetching film metadata."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from rapidfuzz import fuzz

from showreel.config import settings
from showreel.utils.text import canonicalize

logger = logging.getLogger(__name__)

IMAGE_BASE = "https://image.tmdb.org/t/p"

MATCH_THRESHOLD = 0.7
YEAR_BONUS = 0.15
NEAR_YEAR_BONUS = 0.05
YEAR_MISMATCH_PENALTY = 0.2
DIRECTOR_BONUS = 0.15
DIRECTOR_MISMATCH_PENALTY = 0.1


@dataclass
class TMDbMatch:
    tmdb_id: int
    title: str
    year: int | None
    confidence: float


@dataclass
class TMDbFilmDetails:
    """The subset of TMDb movie details stored on a Film."""

    tmdb_id: int
    title: str
    original_title: str | None = None
    year: int | None = None
    imdb_id: str | None = None
    runtime: int | None = None
    synopsis: str | None = None
    tagline: str | None = None
    rating: float | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    certification: str | None = None
    directors: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)


def poster_url(path: str | None, size: str = "w500") -> str | None:
    return f"{IMAGE_BASE}/{size}{path}" if path else None


def backdrop_url(path: str | None, size: str = "w1280") -> str | None:
    return f"{IMAGE_BASE}/{size}{path}" if path else None


def release_year(release_date: str | None) -> int | None:
    """Extract year from TMDb release date string."""
    if not release_date:
        return None
    try:
        return int(release_date[:4])
    except (ValueError, IndexError):
        return None


def score_candidate(title: str, year: int | None, candidate: dict[str, Any]) -> float:
    """
    Title similarity of a search result, nudged by release year.

    The best of the localised and original titles counts. An exact year
    earns a bonus, an adjacent one a smaller bonus, anything further off a
    penalty.
    """
    wanted = canonicalize(title)
    similarity = max(
        fuzz.ratio(wanted, canonicalize(candidate.get("title") or "")),
        fuzz.ratio(wanted, canonicalize(candidate.get("original_title") or "")),
    ) / 100

    candidate_year = release_year(candidate.get("release_date"))
    if year and candidate_year:
        if candidate_year == year:
            similarity += YEAR_BONUS
        elif abs(candidate_year - year) == 1:
            similarity += NEAR_YEAR_BONUS
        else:
            similarity -= YEAR_MISMATCH_PENALTY

    return max(0.0, min(similarity, 1.0))


class TMDbClient:
    """Client for The Movie Database (TMDb) API."""

    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(self, api_key: str | None = None) -> None:
        """
        Initialize TMDb client.

        Args:
            api_key: TMDb API key (uses settings if not provided)
        """
        self.api_key = api_key if api_key is not None else settings.tmdb_api_key
        if not self.api_key:
            logger.warning("TMDb API key not configured")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, **params: Any) -> dict[str, Any] | None:
        if not self.api_key:
            return None

        params = {"api_key": self.api_key, "language": "en-GB", **params}
        try:
            async with httpx.AsyncClient(timeout=settings.scrape_timeout, verify=False) as client:
                response = await client.get(f"{self.BASE_URL}{path}", params=params)
                response.raise_for_status()
                return response.json()
        except Exception as e:
            logger.error(f"TMDb request error for {path}: {e}")
            return None

    async def search_films(self, title: str, year: int | None = None) -> list[dict[str, Any]]:
        """
        Search for films by title.

        Args:
            title: Film title
            year: Release year (optional, helps narrow results)

        Returns:
            Raw search results, possibly empty
        """
        params: dict[str, Any] = {"query": title}
        if year:
            params["year"] = year
        data = await self._get("/search/movie", **params)
        return (data or {}).get("results", [])

    async def search_film(self, title: str, year: int | None = None) -> dict[str, Any] | None:
        """First search result, or None."""
        results = await self.search_films(title, year)
        if not results:
            logger.info(f"No TMDb results for: {title}")
            return None
        return results[0]

    async def match_title(
        self,
        title: str,
        year: int | None = None,
        director: str | None = None,
    ) -> TMDbMatch | None:
        """
        Find the TMDb film a cleaned listing title refers to.

        Searches with the year first and without it if that finds nothing.
        A director hint is checked against the best candidate's credits.

        Returns:
            The best candidate scoring at least MATCH_THRESHOLD, else None
        """
        if not self.enabled:
            return None

        results = await self.search_films(title, year)
        if not results and year:
            results = await self.search_films(title)
        if not results:
            logger.info(f"No TMDb results for: {title}")
            return None

        scored = sorted(
            ((score_candidate(title, year, candidate), candidate) for candidate in results[:10]),
            key=lambda pair: pair[0],
            reverse=True,
        )
        confidence, best = scored[0]

        if director:
            credits = await self._get(f"/movie/{best['id']}/credits")
            if credits is not None:
                directors = [d.lower() for d in self.extract_directors(credits)]
                if any(director.lower() in d or d in director.lower() for d in directors):
                    confidence = min(confidence + DIRECTOR_BONUS, 1.0)
                elif directors:
                    confidence -= DIRECTOR_MISMATCH_PENALTY

        if confidence < MATCH_THRESHOLD:
            logger.info(
                f"TMDb best candidate for '{title}' too weak: '{best.get('title')}' ({confidence:.2f})"
            )
            return None

        return TMDbMatch(
            tmdb_id=best["id"],
            title=best.get("title") or title,
            year=release_year(best.get("release_date")),
            confidence=confidence,
        )

    async def get_film_details(self, tmdb_id: int) -> TMDbFilmDetails | None:
        """
        Get detailed film information including credits and UK certification.

        Args:
            tmdb_id: TMDb film ID

        Returns:
            Film details or None if error
        """
        details = await self._get(f"/movie/{tmdb_id}", append_to_response="credits,release_dates")
        if details is None:
            return None

        credits = details.get("credits") or {}
        return TMDbFilmDetails(
            tmdb_id=tmdb_id,
            title=details.get("title") or "",
            original_title=details.get("original_title"),
            year=release_year(details.get("release_date")),
            imdb_id=details.get("imdb_id") or None,
            runtime=details.get("runtime") or None,
            synopsis=details.get("overview") or None,
            tagline=details.get("tagline") or None,
            rating=details.get("vote_average"),
            poster_url=poster_url(details.get("poster_path")),
            backdrop_url=backdrop_url(details.get("backdrop_path")),
            certification=self.extract_certification(details.get("release_dates") or {}),
            directors=self.extract_directors(credits),
            cast=self.extract_cast(credits, n=10),
            genres=[g["name"].lower() for g in details.get("genres", []) if g.get("name")],
            countries=self.extract_countries(details),
            languages=[lang["iso_639_1"] for lang in details.get("spoken_languages", []) if lang.get("iso_639_1")],
        )

    async def get_poster_url(self, tmdb_id: int) -> str | None:
        details = await self._get(f"/movie/{tmdb_id}")
        return poster_url((details or {}).get("poster_path"))

    def extract_directors(self, credits: dict[str, Any]) -> list[str]:
        """
        Extract director names from TMDb credits.

        Args:
            credits: TMDb credits data

        Returns:
            List of director names
        """
        crew = credits.get("crew", [])
        return [person["name"] for person in crew if person.get("job") == "Director"]

    def extract_countries(self, film_data: dict[str, Any]) -> list[str]:
        """ISO country codes of the production countries."""
        countries = film_data.get("production_countries", [])
        return [country["iso_3166_1"] for country in countries if country.get("iso_3166_1")]

    def extract_cast(self, credits: dict[str, Any], n: int = 3) -> list[str]:
        """
        Extract top-billed cast member names from TMDb credits.

        Args:
            credits: TMDb credits data
            n: Maximum number of cast members to return

        Returns:
            List of actor names (up to n)
        """
        cast = credits.get("cast", [])
        return [person["name"] for person in cast[:n] if person.get("name")]

    def extract_certification(self, release_dates: dict[str, Any]) -> str | None:
        """UK certification, preferring the theatrical release."""
        for country in release_dates.get("results", []):
            if country.get("iso_3166_1") != "GB":
                continue
            dates = country.get("release_dates", [])
            for entry in dates:
                if entry.get("type") == 3 and entry.get("certification"):
                    return entry["certification"]
            for entry in dates:
                if entry.get("certification"):
                    return entry["certification"]
        return None
