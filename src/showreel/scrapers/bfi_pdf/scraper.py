"""BFI Southbank / BFI IMAX adapter built on the monthly guide PDFs."""

import logging
from typing import Any

import httpx

from showreel.exceptions import DocumentFetchError
from showreel.scrapers.base import BaseScraper
from showreel.scrapers.bfi_pdf.fetcher import BFIGuideFetcher, FetchedGuide
from showreel.scrapers.bfi_pdf.parser import extract_pdf_text, parse_guide_text, screenings_for_venue
from showreel.scrapers.bfi_pdf.programme_changes import PROGRAMME_CHANGES_URL, parse_changes_page
from showreel.scrapers.browser import BrowserSession, is_challenge_page
from showreel.scrapers.models import RawScreening, ScraperConfig

logger = logging.getLogger(__name__)

BASE_URL = "https://whatson.bfi.org.uk"

BFI_SOUTHBANK_CONFIG = ScraperConfig(
    cinema_id="bfi-southbank",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=1.0,
)

BFI_IMAX_CONFIG = ScraperConfig(
    cinema_id="bfi-imax",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=1.0,
)


class BFIGuideScraper(BaseScraper):
    """
    Screenings for one BFI venue from the printed guide plus late changes.

    Pages are the downloaded guide PDFs followed by the programme-changes
    HTML. Parsed guides are memoised by content hash in ``parsed_guides``;
    the runner hands Southbank and IMAX the same dict so one run parses
    each PDF once.
    """

    config = BFI_SOUTHBANK_CONFIG

    def __init__(
        self,
        config: ScraperConfig | None = None,
        browser: BrowserSession | None = None,
        parsed_guides: dict[str, list[RawScreening]] | None = None,
    ) -> None:
        super().__init__(config=config, browser=browser)
        self.parsed_guides = parsed_guides if parsed_guides is not None else {}

    async def health_check(self) -> bool:
        # The box office answers HEAD with a challenge; discovery reports real failures
        return True

    async def fetch_pages(self) -> list[Any]:
        fetcher = BFIGuideFetcher(self.client, delay=self.config.delay_between_requests)
        pages: list[Any] = list(await fetcher.fetch_all_relevant_pdfs())
        if not pages:
            raise DocumentFetchError("No BFI guide PDFs could be downloaded")

        try:
            html = await self.fetch_url(PROGRAMME_CHANGES_URL)
        except httpx.HTTPError as e:
            logger.warning(f"BFI: Programme changes page unavailable: {e}")
        else:
            if is_challenge_page(html):
                logger.warning("BFI: Programme changes page is behind a challenge, skipping")
            else:
                pages.append(html)

        return pages

    def parse_page(self, page: FetchedGuide | str) -> list[RawScreening]:
        if isinstance(page, FetchedGuide):
            screenings = self._parse_guide(page)
        else:
            screenings = parse_changes_page(page).screenings
        return screenings_for_venue(screenings, self.cinema_id)

    def _parse_guide(self, guide: FetchedGuide) -> list[RawScreening]:
        cached = self.parsed_guides.get(guide.content_hash)
        if cached is not None:
            logger.debug(f"BFI: Reusing parsed guide {guide.info.label}")
            return cached

        text = extract_pdf_text(guide.content)
        screenings = parse_guide_text(text, months=guide.info.months)
        logger.info(f"BFI: {guide.info.label} yielded {len(screenings)} screenings")
        self.parsed_guides[guide.content_hash] = screenings
        return screenings

