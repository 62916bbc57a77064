"""Parser for the BFI Programme Changes page.

The page lists screenings added or moved after the monthly guide went to
print. Film titles are bold; the text after each carries screening lines
("Thu 8 Jan 14:50 NFT4 p19") and a note saying what changed.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

from bs4 import BeautifulSoup, Tag

from showreel.scrapers.bfi_pdf.parser import (
    GuideScreening,
    booking_url_for,
    clean_title,
    event_type_for,
    parse_screening_matches,
)
from showreel.scrapers.models import RawScreening
from showreel.utils.dates import LONDON_TZ

logger = logging.getLogger(__name__)

PROGRAMME_CHANGES_URL = (
    "https://whatson.bfi.org.uk/Online/default.asp"
    "?BOparam::WScontent::loadArticle::permalink=programme-changes"
)

_SKIP_TITLE_RES = [
    re.compile(r"^(January|February|March|April|May|June|July|August|September|October|November|December)", re.I),
    re.compile(r"Programme$", re.I),
    re.compile(r"PDF downloads", re.I),
    re.compile(r"BFI Membership", re.I),
    re.compile(r"^Updated:", re.I),
    re.compile(r"Sign up", re.I),
]

_NOTE_RES = [
    re.compile(r"Please note[^.]+\.", re.I),
    re.compile(r"This has been given[^.]+\.", re.I),
    re.compile(r"This screening is now[^.]+\.", re.I),
    re.compile(r"will now take place[^.]+\.", re.I),
    re.compile(r"We apologise[^.]+\.", re.I),
    re.compile(r"We are delighted[^.]+\.", re.I),
]

_FORMATS = ("Digital 4K", "Digital", "DCP 4K", "DCP", "35mm", "70mm", "IMAX Laser")

MAX_FOLLOWING_BLOCKS = 10


@dataclass
class ProgrammeChange:
    film_title: str
    raw_title: str
    change_type: str  # addition, modification, cancellation, venue_change, certificate, other
    note: str
    screenings: list[GuideScreening] = field(default_factory=list)
    year: int | None = None
    director: str | None = None
    runtime: int | None = None
    format: str | None = None


@dataclass
class ProgrammeChangesResult:
    changes: list[ProgrammeChange]
    screenings: list[RawScreening]
    last_updated: str | None = None


def classify_change(text: str) -> str:
    if re.search(r"delighted to add|additional screening", text, re.I):
        return "addition"
    if re.search(r"cancelled", text, re.I):
        return "cancellation"
    if re.search(r"will now take place|venue change", text, re.I):
        return "venue_change"
    if re.search(r"certificate", text, re.I):
        return "certificate"
    if re.search(r"please note", text, re.I):
        return "modification"
    return "other"


def extract_note(text: str) -> str:
    for note_re in _NOTE_RES:
        match = note_re.search(text)
        if match:
            return match.group(0).strip()

    for sentence in re.split(r"[.!]", text):
        sentence = sentence.strip()
        if len(sentence) <= 10:
            continue
        if re.search(r"\b(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+\d{1,2}", sentence, re.I):
            continue
        if re.search(r"Screenings?:", sentence, re.I) or re.match(r"^\d{4}$", sentence):
            continue
        return sentence + "."
    return ""


def _following_text(bold: Tag) -> str:
    """Text of the bold element's block plus the blocks up to the next title."""
    block = bold.parent if isinstance(bold.parent, Tag) else bold
    parts = [block.get_text(" ", strip=True)]

    sibling = block.find_next_sibling()
    count = 0
    while sibling is not None and count < MAX_FOLLOWING_BLOCKS:
        text = sibling.get_text(" ", strip=True)
        if text:
            heading = sibling.find(["b", "strong"])
            if heading is not None and heading.get_text(" ", strip=True) == text:
                break
            parts.append(text)
        sibling = sibling.find_next_sibling()
        count += 1

    return " ".join(parts)


def _addition_metadata(change: ProgrammeChange, text: str) -> None:
    year = re.search(r"\b(19|20)\d{2}\b", text)
    if year:
        change.year = int(year.group(0))
    runtime = re.search(r"\b(\d{2,3})min\b", text, re.I)
    if runtime:
        change.runtime = int(runtime.group(1))
    director = re.search(r"Director\s+([^.]+)\.", text, re.I)
    if director:
        change.director = director.group(1).strip()
    for fmt in _FORMATS:
        if fmt in text:
            change.format = fmt
            break


def parse_changes_page(html: str, now: datetime | None = None) -> ProgrammeChangesResult:
    """
    Parse the programme-changes page.

    Cancellations are reported in ``changes`` but contribute no
    screenings: the pipeline never deletes, so they are informational.
    """
    now = now or datetime.now(LONDON_TZ)
    soup = BeautifulSoup(html, "html.parser")

    body_text = soup.get_text(" ", strip=True)
    updated = re.search(r"Updated:\s*(\d{1,2}\s+\w+)", body_text, re.I)
    content = soup.find("main") or soup.body or soup

    changes: list[ProgrammeChange] = []
    for bold in content.find_all(["b", "strong"]):
        title = bold.get_text(" ", strip=True)
        if len(title) < 2 or any(skip.search(title) for skip in _SKIP_TITLE_RES):
            continue

        text = _following_text(bold)
        change_type = classify_change(text)
        screenings = parse_screening_matches(text, now)

        if not screenings and change_type not in ("cancellation", "certificate"):
            continue

        change = ProgrammeChange(
            film_title=clean_title(title),
            raw_title=title,
            change_type=change_type,
            note=extract_note(text),
            screenings=screenings,
        )
        if change_type == "addition":
            _addition_metadata(change, text)
        changes.append(change)

    screenings = changes_to_screenings(changes)
    logger.info(f"BFI: Parsed {len(changes)} programme changes with {len(screenings)} screenings")
    return ProgrammeChangesResult(
        changes=changes,
        screenings=screenings,
        last_updated=updated.group(1) if updated else None,
    )


def changes_to_screenings(changes: list[ProgrammeChange]) -> list[RawScreening]:
    screenings: list[RawScreening] = []
    for change in changes:
        if change.change_type == "cancellation":
            continue
        for screening in change.screenings:
            screenings.append(
                RawScreening(
                    title=change.film_title,
                    start_time=screening.start_time,
                    booking_url=booking_url_for(change.film_title),
                    screen=screening.venue,
                    format=change.format,
                    event_type=event_type_for(change.raw_title),
                    event_description=change.note or None,
                    source_id=(
                        f"bfi-changes-{change.film_title.lower().replace(' ', '-')}"
                        f"-{screening.start_time.isoformat()}"
                    ),
                    year=change.year,
                    director=change.director,
                )
            )
    return screenings
