"""Tests for BFI guide discovery and download."""

import hashlib
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from showreel.exceptions import ChallengeBlockedError, DocumentFetchError
from showreel.scrapers.bfi_pdf.fetcher import (
    GUIDE_PAGE_URL,
    BFIGuideFetcher,
    parse_guide_page,
    parse_month_range,
)

MEDIA = "https://core-cms.bfi.org.uk/media/{}/download"

GUIDE_PAGE_HTML = f"""
<html><body>
<a href="{MEDIA.format(1234)}">February / March 2026 guide and calendar</a>
<a href="{MEDIA.format(1235)}">February / March 2026 guide and calendar – accessible version</a>
<a href="{MEDIA.format(1100)}">January 2026 guide and calendar</a>
<a href="{MEDIA.format(1101)}">January 2026 guide and calendar – accessible version</a>
<a href="{MEDIA.format(1300)}">April 2026 guide and calendar</a>
<a href="{MEDIA.format(999)}">Annual report</a>
<a href="https://www.bfi.org.uk/guide">Plan your visit guide</a>
</body></html>
"""

PDF_BYTES = b"%PDF-1.7 accessible guide"


def response(status_code: int = 200, text: str = "", content: bytes = b"") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.content = content
    return resp


def make_fetcher(*responses: MagicMock) -> tuple[BFIGuideFetcher, MagicMock]:
    client = MagicMock()
    client.get = AsyncMock(side_effect=list(responses))
    return BFIGuideFetcher(client, delay=0), client


class TestParseMonthRange:
    def test_two_month_guide(self) -> None:
        assert parse_month_range("February / March 2026") == (date(2026, 2, 1), date(2026, 3, 31))

    def test_single_month(self) -> None:
        assert parse_month_range("January 2026") == (date(2026, 1, 1), date(2026, 1, 31))

    def test_range_wrapping_the_year(self) -> None:
        assert parse_month_range("December / January 2026") == (date(2026, 12, 1), date(2027, 1, 31))

    @pytest.mark.parametrize("label", ["Summer season", "Guide 2026", ""])
    def test_unparseable(self, label: str) -> None:
        assert parse_month_range(label) is None


class TestParseGuidePage:
    def test_pairs_full_and_accessible_links(self) -> None:
        guides = parse_guide_page(GUIDE_PAGE_HTML)
        assert [g.label for g in guides] == ["February / March 2026", "January 2026"]

        february = guides[0]
        assert february.full_pdf_url == MEDIA.format(1234)
        assert february.accessible_pdf_url == MEDIA.format(1235)
        assert february.media_id == "1235"
        assert february.months == (date(2026, 2, 1), date(2026, 3, 31))

    def test_page_without_guides(self) -> None:
        assert parse_guide_page("<html><body><p>Coming soon</p></body></html>") == []


class TestBFIGuideFetcher:
    async def test_fetch_latest_pdf(self) -> None:
        fetcher, client = make_fetcher(response(text=GUIDE_PAGE_HTML), response(content=PDF_BYTES))

        guide = await fetcher.fetch_latest_pdf(today=date(2026, 2, 10))

        assert guide.info.label == "February / March 2026"
        assert guide.content == PDF_BYTES
        assert guide.content_hash == hashlib.sha256(PDF_BYTES).hexdigest()
        assert client.get.await_args_list[0].args[0] == GUIDE_PAGE_URL
        assert client.get.await_args_list[1].args[0] == MEDIA.format(1235)

    async def test_fetch_latest_falls_back_to_most_recent(self) -> None:
        fetcher, client = make_fetcher(response(text=GUIDE_PAGE_HTML), response(content=PDF_BYTES))

        guide = await fetcher.fetch_latest_pdf(today=date(2026, 6, 1))

        assert guide.info.label == "February / March 2026"

    async def test_fetch_latest_without_guides(self) -> None:
        fetcher, _ = make_fetcher(response(text="<html><body></body></html>"))
        assert await fetcher.fetch_latest_pdf() is None

    async def test_fetch_all_relevant_skips_expired_guides(self) -> None:
        fetcher, client = make_fetcher(response(text=GUIDE_PAGE_HTML), response(content=PDF_BYTES))

        guides = await fetcher.fetch_all_relevant_pdfs(today=date(2026, 2, 10))

        assert [g.info.label for g in guides] == ["February / March 2026"]
        assert client.get.await_count == 2

    async def test_failed_download_is_skipped(self) -> None:
        fetcher, _ = make_fetcher(response(text=GUIDE_PAGE_HTML), response(status_code=500))
        assert await fetcher.fetch_all_relevant_pdfs(today=date(2026, 2, 10)) == []

    async def test_challenge_page_raises(self) -> None:
        fetcher, _ = make_fetcher(response(text="<html><title>Just a moment...</title></html>"))
        with pytest.raises(ChallengeBlockedError):
            await fetcher.discover()

    async def test_guide_page_error_raises(self) -> None:
        fetcher, _ = make_fetcher(response(status_code=404))
        with pytest.raises(DocumentFetchError):
            await fetcher.discover()
