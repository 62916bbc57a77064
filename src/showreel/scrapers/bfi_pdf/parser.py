"""Turn BFI guide text into raw screenings.

Guide text (from the accessible PDF's text layer) lists each film as a
title line, a few lines of credits and blurb, then its screenings:

    Vertigo
    USA 1958. Director Alfred Hitchcock. With James Stewart. 128min
    ...
    Thu 8 Jan 14:50 NFT1 p19; Fri 9 Jan 20:30 NFT3 (AD)
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from urllib.parse import quote

from pypdf import PdfReader

from showreel.scrapers.models import RawScreening
from showreel.utils.dates import LONDON_TZ, MONTHS

logger = logging.getLogger(__name__)

SEARCH_URL = (
    "https://whatson.bfi.org.uk/Online/default.asp"
    "?doWork::WScontent::search=1&BOparam::WScontent::search::article_search_text="
)

VENUE_MAP = {
    "NFT1": "bfi-southbank",
    "NFT2": "bfi-southbank",
    "NFT3": "bfi-southbank",
    "NFT4": "bfi-southbank",
    "STUDIO": "bfi-southbank",
    "IMAX": "bfi-imax",
}

SCREENING_RE = re.compile(
    r"\b(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+(\d{1,2})\s+"
    r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+(\d{1,2}):(\d{2})\s+"
    r"(NFT\d|IMAX|BFI IMAX|Studio)(\s+p\d+)?(\s*\([A-Z]+\))?",
    re.IGNORECASE,
)

_FLAG_RES = {
    "AD": re.compile(r"\bAD\b"),
    "DS": re.compile(r"\bDS\b"),
    "CC": re.compile(r"\bCC\b"),
    "BSL": re.compile(r"\bBSL\b"),
}

# Lines that belong to a film's credits or blurb, never a title
_METADATA_RE = re.compile(
    r"^(Director|Dir\.|With|Screenings?:|[A-Z][A-Za-z\-/]+ (19|20)\d{2}\b)|\d{2,3}min\b"
)
_CREDITS_RE = re.compile(r"^(Director\s|[A-Z][A-Za-z\-\/]+ (19|20)\d{2}\b)")
_FORMAT_PATTERNS = ("Digital 4K", "DCP 4K", "35mm", "70mm", "IMAX Laser")


@dataclass
class GuideScreening:
    start_time: datetime
    venue: str  # "NFT1", "STUDIO", "IMAX"
    cinema_id: str
    accessibility_flags: list[str] = field(default_factory=list)
    page_ref: str | None = None


def clean_title(title: str) -> str:
    title = re.sub(r"\s*\+\s*(Q\s*&?\s*A|intro|discussion|panel).*$", "", title, flags=re.IGNORECASE)
    title = re.sub(r"^(Preview|UK Premiere|Premiere)[:\s]+", "", title, flags=re.IGNORECASE)
    title = re.sub(r"\s*\([^)]+\)\s*$", "", title)
    return title.strip()


def event_type_for(title: str) -> str | None:
    if re.search(r"\+\s*Q\s*&?\s*A", title, re.IGNORECASE) or re.search(
        r"in conversation", title, re.IGNORECASE
    ):
        return "q_and_a"
    if re.search(r"\+\s*intro", title, re.IGNORECASE):
        return "intro"
    return None


def booking_url_for(title: str) -> str:
    return SEARCH_URL + quote(title)


def _screening_year(month: int, now: datetime, months: tuple[date, date] | None) -> int:
    if months:
        start = months[0]
        return start.year + 1 if month < start.month else start.year
    # No guide range: a month well behind the current one belongs to next year
    if month < now.month and now.month - month > 2:
        return now.year + 1
    return now.year


def parse_screening_matches(
    text: str,
    now: datetime | None = None,
    months: tuple[date, date] | None = None,
) -> list[GuideScreening]:
    """Find every "Thu 8 Jan 14:50 NFT4 p19 (AD)" occurrence in ``text``."""
    now = now or datetime.now(LONDON_TZ)
    screenings: list[GuideScreening] = []

    for match in SCREENING_RE.finditer(text):
        _, day, month_name, hour, minute, venue, page_ref, flags = match.groups()
        month = MONTHS[month_name.lower()]
        try:
            start_time = datetime(
                _screening_year(month, now, months), month, int(day), int(hour), int(minute),
                tzinfo=LONDON_TZ,
            )
        except ValueError:
            continue
        if start_time < now:
            continue

        venue_key = venue.upper().replace("BFI ", "")
        screenings.append(
            GuideScreening(
                start_time=start_time,
                venue=venue_key,
                cinema_id=VENUE_MAP.get(venue_key, "bfi-southbank"),
                accessibility_flags=[
                    name for name, flag_re in _FLAG_RES.items() if flag_re.search(flags or "")
                ],
                page_ref=page_ref.strip() if page_ref else None,
            )
        )

    return screenings


def extract_pdf_text(content: bytes) -> str:
    reader = PdfReader(io.BytesIO(content))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _looks_like_title(line: str, next_line: str) -> bool:
    """A title is a short unpunctuated line directly above a credits line."""
    if len(line) < 2 or len(line) > 90:
        return False
    if line.endswith((".", ",", ";")) or _METADATA_RE.search(line):
        return False
    return bool(_CREDITS_RE.match(next_line))


def parse_guide_text(
    text: str,
    now: datetime | None = None,
    months: tuple[date, date] | None = None,
) -> list[RawScreening]:
    """
    Walk the guide text line by line, attributing screenings to the most
    recent title-shaped line.

    Args:
        text: Extracted PDF text
        now: Reference time; earlier screenings are dropped
        months: Month range the guide covers, used to pick the year
    """
    now = now or datetime.now(LONDON_TZ)
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    screenings: list[RawScreening] = []
    current_title: str | None = None
    current_year: int | None = None
    current_format: str | None = None
    current_director: str | None = None

    for index, line in enumerate(lines):
        if SCREENING_RE.search(line):
            if not current_title:
                continue
            title = clean_title(current_title)
            for screening in parse_screening_matches(line, now, months):
                screenings.append(
                    RawScreening(
                        title=title,
                        start_time=screening.start_time,
                        booking_url=booking_url_for(title),
                        screen=screening.venue,
                        format=current_format,
                        event_type=event_type_for(current_title),
                        event_description=", ".join(screening.accessibility_flags) or None,
                        source_id=f"bfi-pdf-{title.lower().replace(' ', '-')}-{screening.start_time.isoformat()}",
                        year=current_year,
                        director=current_director,
                    )
                )
            continue

        next_line = lines[index + 1] if index + 1 < len(lines) else ""
        if _looks_like_title(line, next_line):
            current_title = line
            current_year = current_format = current_director = None
            continue

        if _CREDITS_RE.match(line):
            year = re.search(r"\b(19|20)\d{2}\b", line)
            if year:
                current_year = int(year.group(0))
        director = re.search(r"Director\s+([^.]+)\.", line)
        if director:
            current_director = director.group(1).strip()
        for fmt in _FORMAT_PATTERNS:
            if fmt in line:
                current_format = fmt
                break

    logger.debug(f"BFI: Parsed {len(screenings)} screenings from guide text")
    return screenings


def screenings_for_venue(screenings: list[RawScreening], cinema_id: str) -> list[RawScreening]:
    """Keep screenings whose screen maps to ``cinema_id``."""
    return [s for s in screenings if VENUE_MAP.get((s.screen or "").upper(), "bfi-southbank") == cinema_id]
