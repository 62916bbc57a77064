"""Base scraper interface for all source adapters."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from showreel.config import settings
from showreel.scrapers.browser import BrowserSession
from showreel.scrapers.models import RawScreening, ScraperConfig
from showreel.services.validation import validate_screenings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.9",
}


class BaseScraper(ABC):
    """
    Abstract base class for all source adapters.

    Subclasses implement ``fetch_pages`` and ``parse_page``; everything
    else has a shared default. ``scrape`` runs the fixed sequence
    initialize → fetch → parse → validate → cleanup.

    Fetch errors propagate so the runner can retry the venue. Parse errors
    are per page: a page that fails to parse is logged and skipped.
    """

    config: ScraperConfig

    def __init__(
        self,
        config: ScraperConfig | None = None,
        browser: BrowserSession | None = None,
    ) -> None:
        """
        Args:
            config: Overrides the class-level config (used by multi-venue setups)
            browser: Shared browser session owned by the runner
        """
        if config is not None:
            self.config = config
        self.browser = browser
        self._owns_browser = False
        self.client: httpx.AsyncClient | None = None
        self.rejected_count = 0

    @property
    def cinema_id(self) -> str:
        return self.config.cinema_id

    # ------------------------------------------------------------------
    # Template
    # ------------------------------------------------------------------

    async def scrape(self) -> list[RawScreening]:
        """Fetch, parse and validate every page for this venue."""
        await self.initialize()
        try:
            pages = await self.fetch_pages()
            logger.info(f"[{self.cinema_id}] Fetched {len(pages)} page(s)")
            screenings = self.parse_pages(pages)
            valid = self.validate(screenings)
        finally:
            await self.cleanup()

        logger.info(f"[{self.cinema_id}] Found {len(valid)} valid screenings")
        return valid

    async def initialize(self) -> None:
        self.client = httpx.AsyncClient(
            timeout=settings.scrape_timeout,
            verify=False,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )

    async def cleanup(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        if self._owns_browser and self.browser is not None:
            await self.browser.close()
            self.browser = None
            self._owns_browser = False

    @abstractmethod
    async def fetch_pages(self) -> list[Any]:
        """
        Fetch the raw documents for this venue.

        Returns:
            HTML strings, JSON payloads or any other per-page document

        Raises:
            Any network error for the primary page, so the runner can retry
        """

    def parse_pages(self, pages: list[Any]) -> list[RawScreening]:
        """Parse every page, skipping pages that fail."""
        screenings: list[RawScreening] = []
        for index, page in enumerate(pages):
            try:
                screenings.extend(self.parse_page(page))
            except Exception as e:
                logger.warning(f"[{self.cinema_id}] Failed to parse page {index}: {e}")
        return screenings

    @abstractmethod
    def parse_page(self, page: Any) -> list[RawScreening]:
        """Parse a single fetched document into raw screenings."""

    def validate(self, screenings: list[RawScreening]) -> list[RawScreening]:
        """
        Drop records with no title, a past start time or no booking URL,
        then dedupe by source id.
        """
        result = validate_screenings(screenings)
        self.rejected_count = result.summary.rejected

        seen: set[str] = set()
        unique: list[RawScreening] = []
        for screening in result.valid:
            if screening.source_id:
                if screening.source_id in seen:
                    continue
                seen.add(screening.source_id)
            unique.append(screening)
        return unique

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def health_check(self) -> bool:
        """Return True if the venue's site answers a HEAD request."""
        try:
            async with httpx.AsyncClient(
                timeout=settings.scrape_timeout,
                verify=False,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            ) as client:
                response = await client.head(self.config.base_url)
                return response.status_code < 400
        except Exception as e:
            logger.warning(f"[{self.cinema_id}] Health check failed: {e}")
            return False

    async def delay(self) -> None:
        await asyncio.sleep(self.config.delay_between_requests)

    async def fetch_url(self, url: str, **kwargs: Any) -> str:
        """GET ``url`` after the configured inter-request delay."""
        response = await self.request("GET", url, **kwargs)
        return response.text

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self.client is None:
            await self.initialize()
        await self.delay()
        response = await self.client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def get_browser(self) -> BrowserSession:
        """Return the shared browser, creating a private one if none was given."""
        if self.browser is None:
            self.browser = BrowserSession()
            self._owns_browser = True
        return self.browser

    def absolute_url(self, href: str) -> str:
        if href.startswith("http"):
            return href
        base = self.config.base_url.rstrip("/")
        return f"{base}/{href.lstrip('/')}"


class ChainScraper(ABC):
    """
    Adapter that covers several venues of one chain in a single pass.

    Chains usually expose one API for every site, so fetching venue by
    venue would repeat the same requests. ``scrape_venues`` returns the
    validated screenings of each requested venue.
    """

    chain_id: str
    base_url: str
    delay_between_requests: float = 1.0

    def __init__(self) -> None:
        self.client: httpx.AsyncClient | None = None
        self.rejected_counts: dict[str, int] = {}

    @abstractmethod
    async def scrape_venues(self, venue_ids: list[str]) -> dict[str, list[RawScreening]]:
        """Fetch screenings for ``venue_ids``, keyed by venue id."""

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=settings.scrape_timeout,
                verify=False,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            ) as client:
                response = await client.head(self.base_url)
                return response.status_code < 400
        except Exception as e:
            logger.warning(f"[{self.chain_id}] Health check failed: {e}")
            return False

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=settings.scrape_timeout,
                verify=False,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
        await asyncio.sleep(self.delay_between_requests)
        response = await self.client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def cleanup(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def validate(self, venue_id: str, screenings: list[RawScreening]) -> list[RawScreening]:
        result = validate_screenings(screenings)
        self.rejected_counts[venue_id] = result.summary.rejected
        return result.valid
