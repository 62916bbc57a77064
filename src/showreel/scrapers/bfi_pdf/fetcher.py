"""Discovery and download of the BFI Southbank monthly guide PDFs.

The guide page lists each month's guide twice: the full visual PDF and an
"accessible version" that carries a real text layer. Only the accessible
one is worth parsing.

Discovery page: GUIDE_PAGE_URL
PDF URL pattern: https://core-cms.bfi.org.uk/media/{mediaId}/download
"""

import asyncio
import hashlib
import logging
import re
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import httpx
from bs4 import BeautifulSoup

from showreel.exceptions import ChallengeBlockedError, DocumentFetchError
from showreel.scrapers.browser import is_challenge_page
from showreel.utils.dates import MONTHS

logger = logging.getLogger(__name__)

GUIDE_PAGE_URL = (
    "https://whatson.bfi.org.uk/Online/default.asp"
    "?BOparam::WScontent::loadArticle::permalink=bfisouthbankguide"
)

_MEDIA_ID_RE = re.compile(r"/media/(\d+)/download")
_LABEL_RE = re.compile(r"^([\w\s/]+\d{4})")
_MONTH_RANGE_RE = re.compile(r"([a-z]+)(?:\s*/\s*([a-z]+))?\s+(\d{4})")

PDF_HEADERS = {"Accept": "application/pdf,*/*"}


@dataclass
class GuideInfo:
    """One month's guide as listed on the guide page."""

    label: str  # "February / March 2026"
    full_pdf_url: str = ""
    accessible_pdf_url: str = ""
    media_id: str = ""
    months: tuple[date, date] | None = None


@dataclass
class FetchedGuide:
    info: GuideInfo
    content: bytes
    content_hash: str  # SHA-256 of the PDF bytes
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parse_month_range(label: str) -> tuple[date, date] | None:
    """
    Parse "February / March 2026" or "January 2026" into first/last day.

    A range that wraps the year ("December / January 2026") ends in the
    following year.
    """
    match = _MONTH_RANGE_RE.search(label.lower())
    if not match:
        return None

    start_name, end_name, year_text = match.groups()
    start_month = MONTHS.get(start_name)
    if start_month is None:
        return None
    year = int(year_text)
    start = date(year, start_month, 1)

    end_month = MONTHS.get(end_name) if end_name else None
    if end_month is None:
        end_month, end_year = start_month, year
    else:
        end_year = year + 1 if end_month < start_month else year

    end = date(end_year, end_month, monthrange(end_year, end_month)[1])
    return start, end


def _clean_label(text: str) -> str:
    match = _LABEL_RE.match(text)
    label = match.group(1) if match else text
    label = label.replace(" guide and calendar", "").replace(" – accessible version", "")
    return label.strip()


def parse_guide_page(html: str) -> list[GuideInfo]:
    """Pair up full and accessible PDF links by month label."""
    soup = BeautifulSoup(html, "html.parser")
    guides: dict[str, GuideInfo] = {}

    for link in soup.select('a[href*="core-cms.bfi.org.uk/media"]'):
        href = link.get("href") or ""
        text = link.get_text(" ", strip=True)
        if "guide" not in text.lower():
            continue

        media_match = _MEDIA_ID_RE.search(href)
        if not media_match:
            continue

        label = _clean_label(text)
        guide = guides.get(label)
        if guide is None:
            guide = guides[label] = GuideInfo(label=label, months=parse_month_range(label))

        if "accessible" in text.lower():
            guide.accessible_pdf_url = href
            guide.media_id = media_match.group(1)
        else:
            guide.full_pdf_url = href
            if not guide.media_id:
                guide.media_id = media_match.group(1)

    return [guide for guide in guides.values() if guide.accessible_pdf_url]


class BFIGuideFetcher:
    """
    Finds and downloads guide PDFs.

    Args:
        client: HTTP client to use (owned by the caller)
        delay: Seconds to wait before every request
    """

    def __init__(self, client: httpx.AsyncClient, delay: float = 1.0) -> None:
        self.client = client
        self.delay = delay

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        await asyncio.sleep(self.delay)
        response = await self.client.get(url, **kwargs)
        if response.status_code >= 400:
            raise DocumentFetchError(f"GET {url} returned {response.status_code}")
        return response

    async def discover(self) -> list[GuideInfo]:
        """
        List the guides on the guide page.

        Raises:
            ChallengeBlockedError: The page is an anti-bot interstitial
            DocumentFetchError: The page could not be fetched
        """
        response = await self._get(GUIDE_PAGE_URL)
        html = response.text
        if is_challenge_page(html):
            raise ChallengeBlockedError("bfi-southbank", "guide page is behind a challenge")

        guides = parse_guide_page(html)
        logger.info(f"BFI: Found {len(guides)} guide PDF(s) with accessible versions")
        return guides

    async def download(self, info: GuideInfo) -> FetchedGuide:
        url = info.accessible_pdf_url or info.full_pdf_url
        if not url:
            raise DocumentFetchError(f"No PDF URL available for {info.label}")

        response = await self._get(url, headers=PDF_HEADERS)
        content = response.content
        content_hash = hashlib.sha256(content).hexdigest()
        logger.info(f"BFI: Downloaded {info.label} ({len(content)} bytes, hash {content_hash[:12]})")
        return FetchedGuide(info=info, content=content, content_hash=content_hash)

    async def fetch_latest_pdf(self, today: date | None = None) -> FetchedGuide | None:
        """Download the newest guide that still covers upcoming dates."""
        guides = await self.discover()
        if not guides:
            return None

        today = today or date.today()
        dated = sorted(
            (g for g in guides if g.months),
            key=lambda g: g.months[0],
            reverse=True,
        )
        for guide in dated:
            if guide.months[1] >= today:
                return await self.download(guide)

        logger.info("BFI: No guide covers future dates, using the most recent")
        return await self.download(dated[0] if dated else guides[0])

    async def fetch_all_relevant_pdfs(self, today: date | None = None) -> list[FetchedGuide]:
        """Download every guide whose end month has not passed."""
        today = today or date.today()
        guides = [g for g in await self.discover() if g.months is None or g.months[1] >= today]

        fetched: list[FetchedGuide] = []
        for guide in guides:
            try:
                fetched.append(await self.download(guide))
            except (DocumentFetchError, httpx.HTTPError) as e:
                logger.error(f"BFI: Failed to download {guide.label}: {e}")
        return fetched
