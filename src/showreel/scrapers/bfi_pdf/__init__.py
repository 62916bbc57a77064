"""BFI Southbank guide PDFs: discovery, download, text parsing and late changes."""

from showreel.scrapers.bfi_pdf.fetcher import BFIGuideFetcher, FetchedGuide, GuideInfo, parse_month_range
from showreel.scrapers.bfi_pdf.parser import parse_guide_text
from showreel.scrapers.bfi_pdf.programme_changes import parse_changes_page
from showreel.scrapers.bfi_pdf.scraper import BFI_IMAX_CONFIG, BFI_SOUTHBANK_CONFIG, BFIGuideScraper

__all__ = [
    "BFIGuideFetcher",
    "BFIGuideScraper",
    "BFI_IMAX_CONFIG",
    "BFI_SOUTHBANK_CONFIG",
    "FetchedGuide",
    "GuideInfo",
    "parse_changes_page",
    "parse_guide_text",
    "parse_month_range",
]
