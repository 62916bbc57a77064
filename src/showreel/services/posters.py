"""Poster lookup across several sources.

Sources are tried in order until one yields a URL:

1. TMDb by id, or TMDb title search when no id is known
2. OMDb (by IMDb id, else by title)
3. Fanart.tv (by TMDb or IMDb id)
4. The poster URL the scraper found, if it answers a HEAD with an image
5. A generated placeholder

Placeholder results must never be written to ``Film.poster_url``; callers
check ``PosterResult.is_placeholder``.
"""

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from showreel.config import settings
from showreel.services.classifier import CONFIDENCE_LEVELS, TitleClassifier
from showreel.services.tmdb_client import TMDbClient, poster_url

logger = logging.getLogger(__name__)

OMDB_BASE_URL = "http://www.omdbapi.com"
FANART_BASE_URL = "https://webservice.fanart.tv/v3/movies"
PLACEHOLDER_PATH = "/api/poster-placeholder"

PLACEHOLDER = "placeholder"


@dataclass
class PosterResult:
    url: str
    source: str  # "tmdb", "omdb", "fanart", "scraper" or "placeholder"

    @property
    def is_placeholder(self) -> bool:
        return self.source == PLACEHOLDER


def placeholder_url(title: str, year: int | None = None) -> str:
    params = {"title": title}
    if year:
        params["year"] = str(year)
    return f"{PLACEHOLDER_PATH}?{urlencode(params)}"


class OMDbClient:
    """Minimal OMDb lookup; only the poster is used."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key if api_key is not None else settings.omdb_api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, params: dict[str, Any]) -> dict[str, Any] | None:
        try:
            async with httpx.AsyncClient(timeout=settings.scrape_timeout, verify=False) as client:
                response = await client.get(OMDB_BASE_URL, params={"apikey": self.api_key, **params})
                response.raise_for_status()
                data = response.json()
        except Exception as e:
            logger.error(f"OMDb request error: {e}")
            return None
        if data.get("Response") == "False":
            return None
        return data

    async def get_poster(self, title: str | None = None, year: int | None = None, imdb_id: str | None = None) -> str | None:
        if not self.enabled:
            return None
        params: dict[str, Any] = {"type": "movie"}
        if imdb_id:
            params["i"] = imdb_id
        else:
            params["t"] = title
            if year:
                params["y"] = year
        data = await self._get(params)
        poster = (data or {}).get("Poster")
        return poster if poster and poster != "N/A" else None


class FanartClient:
    """Fanart.tv movie posters, English first, then most liked."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key if api_key is not None else settings.fanart_api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def get_best_poster(self, film_id: int | str) -> str | None:
        if not self.enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=settings.scrape_timeout, verify=False) as client:
                response = await client.get(f"{FANART_BASE_URL}/{film_id}", headers={"api-key": self.api_key})
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                images = response.json()
        except Exception as e:
            logger.error(f"Fanart.tv request error for {film_id}: {e}")
            return None

        posters = images.get("movieposter") or []
        if not posters:
            return None

        def rank(image: dict[str, Any]) -> tuple[int, int]:
            english = image.get("lang") in ("en", "")
            try:
                likes = int(image.get("likes") or 0)
            except ValueError:
                likes = 0
            return (0 if english else 1, -likes)

        return sorted(posters, key=rank)[0].get("url")


class PosterService:
    """Find the best available poster for a film."""

    def __init__(
        self,
        tmdb: TMDbClient | None = None,
        omdb: OMDbClient | None = None,
        fanart: FanartClient | None = None,
        classifier: TitleClassifier | None = None,
    ) -> None:
        self.tmdb = tmdb or TMDbClient()
        self.omdb = omdb or OMDbClient()
        self.fanart = fanart or FanartClient()
        self.classifier = classifier

    async def find_poster(
        self,
        title: str,
        year: int | None = None,
        imdb_id: str | None = None,
        tmdb_id: int | None = None,
        hint_url: str | None = None,
    ) -> PosterResult:
        """
        Try each source in turn.

        Args:
            title: Film title
            year: Release year, if known
            imdb_id: IMDb id, if known
            tmdb_id: TMDb id, if known
            hint_url: Poster URL found by the scraper

        Returns:
            PosterResult; ``source == "placeholder"`` when nothing was found
        """
        attempted: list[str] = []

        if self.tmdb.enabled:
            attempted.append("tmdb")
            url = await self._try_tmdb(title, year, tmdb_id)
            if url:
                return PosterResult(url=url, source="tmdb")

        if self.omdb.enabled:
            attempted.append("omdb")
            url = await self.omdb.get_poster(title=title, year=year, imdb_id=imdb_id)
            if url:
                return PosterResult(url=url, source="omdb")

        if self.fanart.enabled and (tmdb_id or imdb_id):
            attempted.append("fanart")
            for film_id in (tmdb_id, imdb_id):
                if film_id:
                    url = await self.fanart.get_best_poster(film_id)
                    if url:
                        return PosterResult(url=url, source="fanart")

        if hint_url:
            attempted.append("scraper")
            if await self.is_image_url(hint_url):
                return PosterResult(url=hint_url, source="scraper")

        logger.info(f"No poster found for '{title}' ({year}) after trying: {', '.join(attempted) or 'nothing'}")
        return PosterResult(url=placeholder_url(title, year), source=PLACEHOLDER)

    async def _try_tmdb(self, title: str, year: int | None, tmdb_id: int | None) -> str | None:
        if tmdb_id:
            return await self.tmdb.get_poster_url(tmdb_id)

        best = await self.tmdb.search_film(title, year)
        if best and best.get("poster_path"):
            return poster_url(best["poster_path"])

        # Event-wrapped titles rarely match; retry once with the extracted title
        if self.classifier is not None:
            extraction = await self.classifier.classify(title)
            if extraction.film_title != title and extraction.confidence > CONFIDENCE_LEVELS["low"]:
                best = await self.tmdb.search_film(extraction.film_title, year)
                if best and best.get("poster_path"):
                    return poster_url(best["poster_path"])
        return None

    async def is_image_url(self, url: str) -> bool:
        """True if a HEAD request succeeds with an image content type."""
        try:
            async with httpx.AsyncClient(
                timeout=settings.scrape_timeout, verify=False, follow_redirects=True
            ) as client:
                response = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug(f"Poster hint {url} unreachable: {e}")
            return False
        content_type = response.headers.get("content-type", "")
        return response.status_code < 400 and content_type.startswith("image/")
