"""Validation gate for raw screenings.

A record is rejected if and only if its title is blank, its start time is
missing, unparseable or in the past, or its booking URL is blank.
Everything else that looks odd (a 9am showing, a Christmas Day date) is
reported as a warning and passed through. Every rejection is counted and
returned with its reasons.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from showreel.scrapers.models import RawScreening

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

FAR_FUTURE_DAYS = 90
EARLY_HOUR = 10
LATE_HOUR = 23
HOLIDAY_DATES = {(12, 24), (12, 25), (12, 26), (1, 1)}


@dataclass
class RejectedScreening:
    screening: "RawScreening"
    errors: list[str]


@dataclass
class ScreeningWarning:
    screening: "RawScreening"
    code: str
    message: str


@dataclass
class ValidationSummary:
    total: int = 0
    valid: int = 0
    rejected: int = 0
    warnings: int = 0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    warnings_by_type: dict[str, int] = field(default_factory=dict)


@dataclass
class ValidationResult:
    valid: list["RawScreening"]
    rejected: list[RejectedScreening]
    warnings: list[ScreeningWarning]
    summary: ValidationSummary


def parse_start_time(value: datetime | str | None) -> datetime | None:
    """
    Coerce an adapter-supplied start time to an aware datetime.

    Naive values are taken to be London local time. Returns None for
    missing or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=LONDON_TZ)
    return value


def _check(
    screening: "RawScreening", now: datetime
) -> tuple[list[str], list[tuple[str, str]], datetime | None]:
    errors: list[str] = []
    warnings: list[tuple[str, str]] = []

    if not (screening.title or "").strip():
        errors.append("missing_title")

    start_time = None
    if screening.start_time is None or (
        isinstance(screening.start_time, str) and not screening.start_time.strip()
    ):
        errors.append("missing_datetime")
    else:
        start_time = parse_start_time(screening.start_time)
        if start_time is None:
            errors.append("invalid_datetime")
        elif start_time <= now:
            errors.append("past_datetime")

    booking_url = (screening.booking_url or "").strip()
    if not booking_url:
        errors.append("missing_booking_url")
    elif not booking_url.startswith(("http://", "https://")):
        warnings.append(("non_http_url", f"Booking URL is not http(s): {booking_url}"))

    if start_time is not None and not errors:
        local = start_time.astimezone(LONDON_TZ)
        if local.hour < EARLY_HOUR:
            warnings.append(("early_hour", f"Unusually early showing at {local:%H:%M}"))
        if local.hour >= LATE_HOUR:
            warnings.append(("late_hour", f"Unusually late showing at {local:%H:%M}"))
        if start_time - now > timedelta(days=FAR_FUTURE_DAYS):
            warnings.append(("far_future", f"More than {FAR_FUTURE_DAYS} days ahead"))
        if (local.month, local.day) in HOLIDAY_DATES:
            warnings.append(("holiday_date", f"Showing on a public holiday ({local:%d %b})"))

    return errors, warnings, start_time


def validate_screenings(
    screenings: list["RawScreening"], now: datetime | None = None
) -> ValidationResult:
    """
    Split raw screenings into valid and rejected records.

    Valid records are returned with ``start_time`` coerced to an aware
    datetime and title/booking URL stripped of surrounding whitespace.

    Args:
        screenings: Adapter output
        now: Reference time (defaults to the current UTC time)

    Returns:
        ValidationResult with per-record reasons and an aggregate summary
    """
    now = now or datetime.now(timezone.utc)
    valid: list["RawScreening"] = []
    rejected: list[RejectedScreening] = []
    warnings: list[ScreeningWarning] = []
    error_counts: Counter[str] = Counter()
    warning_counts: Counter[str] = Counter()

    for screening in screenings:
        errors, record_warnings, start_time = _check(screening, now)

        if errors:
            rejected.append(RejectedScreening(screening=screening, errors=errors))
            error_counts.update(errors)
            continue

        for code, message in record_warnings:
            warnings.append(ScreeningWarning(screening=screening, code=code, message=message))
            warning_counts[code] += 1

        valid.append(
            replace(
                screening,
                title=screening.title.strip(),
                start_time=start_time,
                booking_url=screening.booking_url.strip(),
            )
        )

    summary = ValidationSummary(
        total=len(screenings),
        valid=len(valid),
        rejected=len(rejected),
        warnings=len(warnings),
        errors_by_type=dict(error_counts),
        warnings_by_type=dict(warning_counts),
    )

    if rejected:
        logger.info(
            f"Validation rejected {len(rejected)}/{len(screenings)} screenings: "
            f"{summary.errors_by_type}"
        )

    return ValidationResult(valid=valid, rejected=rejected, warnings=warnings, summary=summary)
