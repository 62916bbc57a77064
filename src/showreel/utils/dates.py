"""Parsing helpers for the free-text dates and times cinema sites print."""

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

LONDON_TZ = ZoneInfo("Europe/London")

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_UK_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MONTH_RE = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,9})\.?(?:,?\s+(\d{4}))?\b"
)
_TIME_RE = re.compile(r"\b(\d{1,2})(?:[:.](\d{2}))?\s*([ap]\.?m\.?)?(?![\w])", re.IGNORECASE)


def infer_year(month: int, day: int, reference: date) -> int:
    """
    Pick the year for a date printed without one.

    Listings only ever show upcoming dates, so a day/month that has already
    passed relative to ``reference`` belongs to next year.
    """
    try:
        candidate = date(reference.year, month, day)
    except ValueError:
        return reference.year
    if candidate < reference:
        return reference.year + 1
    return reference.year


def parse_screening_date(text: str, reference: date | None = None) -> date | None:
    """
    Parse dates like "2024-12-22", "22/12/2024", "Sun 22 Dec",
    "Friday 19th December" or "22 December 2024".

    Returns None when no date can be found.
    """
    text = (text or "").strip()
    if not text:
        return None
    reference = reference or datetime.now(LONDON_TZ).date()

    iso = _ISO_DATE_RE.match(text)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            return None

    uk = _UK_DATE_RE.match(text)
    if uk:
        try:
            return date(int(uk.group(3)), int(uk.group(2)), int(uk.group(1)))
        except ValueError:
            return None

    for match in _DAY_MONTH_RE.finditer(text):
        month = MONTHS.get(match.group(2).lower())
        if not month:
            continue
        day = int(match.group(1))
        year = int(match.group(3)) if match.group(3) else infer_year(month, day, reference)
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


def parse_screening_time(text: str) -> time | None:
    """
    Parse showtimes like "18:30", "6.30pm", "6pm" or "12:00am".

    A bare single-digit hour with no am/pm is read as afternoon/evening
    ("2:00" is 14:00), the convention every listing site follows.
    """
    text = (text or "").strip()
    if not text:
        return None

    for match in _TIME_RE.finditer(text):
        hour_text, minute_text, meridiem = match.groups()
        if minute_text is None and meridiem is None:
            continue
        hour = int(hour_text)
        minute = int(minute_text or 0)

        if meridiem:
            is_pm = meridiem.lower().startswith("p")
            if is_pm and hour != 12:
                hour += 12
            elif not is_pm and hour == 12:
                hour = 0
        elif hour < 10:
            hour += 12

        if hour > 23 or minute > 59:
            return None
        return time(hour, minute)

    return None


def combine_date_time(day: date, clock: time) -> datetime:
    """Attach a wall-clock time to a date in London local time."""
    return datetime(day.year, day.month, day.day, clock.hour, clock.minute, tzinfo=LONDON_TZ)
