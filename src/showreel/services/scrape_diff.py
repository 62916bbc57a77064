"""Compare a scrape against what is already stored, and veto obvious breakage.

The comparison window is ``now .. now + diff_window_days``. Screenings are
matched on (canonical title, exact UTC start time). Only the wholesale loss
of a venue's listings blocks a run; everything else is a warning.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.config import settings
from showreel.models import Cinema, Film, Screening
from showreel.scrapers.models import RawScreening
from showreel.services.validation import LONDON_TZ, parse_start_time
from showreel.utils.text import canonicalize

logger = logging.getLogger(__name__)

LARGE_DROP = "LARGE_DROP"
SCRAPER_BROKEN = "SCRAPER_BROKEN"
HOLIDAY = "HOLIDAY"
RECENTLY_ADDED_THEN_REMOVED = "RECENTLY_ADDED_THEN_REMOVED"

REPEATED_LARGE_DROP = "REPEATED_LARGE_DROP"

BLOCKING_CODES = frozenset({SCRAPER_BROKEN, REPEATED_LARGE_DROP})
RECENT_DAYS = 1
STREAK_KEY = "diff_warning_streak"


@dataclass
class ExistingScreening:
    title: str
    start_time: datetime
    first_seen: datetime | None = None


@dataclass
class DiffEntry:
    title: str
    start_time: datetime
    days_since_first_seen: int | None = None


@dataclass
class DiffWarning:
    code: str
    message: str


@dataclass
class ScrapeDiffReport:
    cinema_id: str
    cinema_name: str
    timestamp: datetime
    existing_count: int = 0
    new_count: int = 0
    added: list[DiffEntry] = field(default_factory=list)
    removed: list[DiffEntry] = field(default_factory=list)
    unchanged_count: int = 0
    warnings: list[DiffWarning] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def has_issues(self) -> bool:
        return bool(self.warnings)

    @property
    def should_block(self) -> bool:
        return any(w.code in BLOCKING_CODES for w in self.warnings)

    def has_warning(self, code: str) -> bool:
        return any(w.code == code for w in self.warnings)

    def summary(self) -> str:
        return (
            f"{self.cinema_name}: existing={self.existing_count} new={self.new_count} "
            f"added={self.added_count} removed={self.removed_count} "
            f"unchanged={self.unchanged_count} warnings={[w.code for w in self.warnings]}"
        )


def _key(title: str, start_time: datetime) -> tuple[str, datetime]:
    return canonicalize(title), start_time.astimezone(timezone.utc)


def compute_diff(
    cinema_id: str,
    cinema_name: str,
    existing: list[ExistingScreening],
    proposed: list[RawScreening],
    now: datetime | None = None,
    window_days: int | None = None,
) -> ScrapeDiffReport:
    """
    Diff proposed screenings against the stored ones.

    Args:
        existing: Stored screenings already inside the window
        proposed: Validated adapter output (any start time; the window is applied here)
        now: Reference time (defaults to the current UTC time)
        window_days: Comparison horizon (defaults to settings.diff_window_days)
    """
    now = now or datetime.now(timezone.utc)
    window_days = window_days if window_days is not None else settings.diff_window_days
    limit = now + timedelta(days=window_days)

    existing_by_key: dict[tuple[str, datetime], ExistingScreening] = {}
    for row in existing:
        existing_by_key[_key(row.title, row.start_time)] = row

    proposed_keys: set[tuple[str, datetime]] = set()
    added: list[DiffEntry] = []
    for screening in proposed:
        start_time = parse_start_time(screening.start_time)
        if start_time is None or not (now <= start_time <= limit):
            continue
        key = _key(screening.title, start_time)
        if key in proposed_keys:
            continue
        proposed_keys.add(key)
        if key not in existing_by_key:
            added.append(DiffEntry(title=screening.title, start_time=start_time))

    removed: list[DiffEntry] = []
    for key, row in existing_by_key.items():
        if key in proposed_keys:
            continue
        days = None
        if row.first_seen is not None:
            days = (now - row.first_seen).days
        removed.append(DiffEntry(title=row.title, start_time=row.start_time, days_since_first_seen=days))

    report = ScrapeDiffReport(
        cinema_id=cinema_id,
        cinema_name=cinema_name,
        timestamp=now,
        existing_count=len(existing_by_key),
        new_count=len(proposed_keys),
        added=sorted(added, key=lambda e: e.start_time),
        removed=sorted(removed, key=lambda e: e.start_time),
        unchanged_count=len(existing_by_key) - len(removed),
    )
    report.warnings = _warnings(report)
    return report


def _warnings(report: ScrapeDiffReport) -> list[DiffWarning]:
    warnings: list[DiffWarning] = []
    existing = report.existing_count
    removed = report.removed_count

    if existing >= settings.large_drop_min_existing and removed > existing * settings.large_drop_ratio:
        warnings.append(
            DiffWarning(
                LARGE_DROP,
                f"{removed}/{existing} screenings removed ({round(removed / existing * 100)}%), "
                "possible scraper issue",
            )
        )

    if existing > 0 and report.new_count == 0:
        warnings.append(
            DiffWarning(
                SCRAPER_BROKEN,
                f"All {existing} screenings would be removed, scraper may have failed",
            )
        )

    for entry in report.added:
        local = entry.start_time.astimezone(LONDON_TZ)
        if local.month == 12 and local.day == 25:
            warnings.append(DiffWarning(HOLIDAY, f"New screening on Christmas Day: {entry.title}"))

    for entry in report.removed:
        if entry.days_since_first_seen is not None and entry.days_since_first_seen <= RECENT_DAYS:
            warnings.append(
                DiffWarning(
                    RECENTLY_ADDED_THEN_REMOVED,
                    f"{entry.title!r} was added {entry.days_since_first_seen} day(s) ago and is now gone",
                )
            )

    return warnings


def escalate(report: ScrapeDiffReport, previous_streak: int, runs: int | None = None) -> int:
    """
    Track consecutive LARGE_DROP runs and block once the streak reaches ``runs``.

    ``runs`` defaults to settings.warning_escalation_runs; 0 disables
    escalation. Returns the new streak length for the caller to store.
    """
    runs = settings.warning_escalation_runs if runs is None else runs
    streak = previous_streak + 1 if report.has_warning(LARGE_DROP) else 0
    if runs > 0 and streak >= runs:
        report.warnings.append(
            DiffWarning(
                REPEATED_LARGE_DROP,
                f"Large drop reported on {streak} consecutive runs",
            )
        )
    return streak


async def load_existing(
    session: AsyncSession,
    cinema_id: str,
    now: datetime,
    window_days: int,
) -> list[ExistingScreening]:
    """Stored screenings for a venue inside the comparison window."""
    limit = now + timedelta(days=window_days)
    result = await session.execute(
        select(Screening.raw_title, Film.title, Screening.start_time, Screening.created_at)
        .join(Film, Screening.film_id == Film.id)
        .where(
            Screening.cinema_id == cinema_id,
            Screening.start_time >= now,
            Screening.start_time <= limit,
        )
    )
    return [
        ExistingScreening(title=raw_title or film_title, start_time=start_time, first_seen=created_at)
        for raw_title, film_title, start_time, created_at in result.all()
    ]


async def detect_changes(
    session: AsyncSession,
    cinema_id: str,
    proposed: list[RawScreening],
    now: datetime | None = None,
) -> ScrapeDiffReport:
    """Load the stored window for ``cinema_id`` and diff ``proposed`` against it."""
    now = now or datetime.now(timezone.utc)
    window_days = settings.diff_window_days

    cinema = await session.get(Cinema, cinema_id)
    existing = await load_existing(session, cinema_id, now, window_days)
    report = compute_diff(
        cinema_id,
        cinema.name if cinema else cinema_id,
        existing,
        proposed,
        now=now,
        window_days=window_days,
    )

    if report.has_issues:
        logger.warning(f"Scrape diff: {report.summary()}")
    else:
        logger.info(f"Scrape diff: {report.summary()}")
    return report
