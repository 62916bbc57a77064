"""Unit tests for the scrape diff detector."""

from datetime import datetime, timedelta, timezone

from showreel.scrapers.models import RawScreening
from showreel.services.scrape_diff import (
    HOLIDAY,
    LARGE_DROP,
    RECENTLY_ADDED_THEN_REMOVED,
    REPEATED_LARGE_DROP,
    SCRAPER_BROKEN,
    ExistingScreening,
    compute_diff,
    escalate,
)
from showreel.services.validation import LONDON_TZ

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
LONG_AGO = NOW - timedelta(days=20)


def existing_rows(count: int, first_seen: datetime | None = LONG_AGO) -> list[ExistingScreening]:
    return [
        ExistingScreening(
            title=f"Film {i}",
            start_time=NOW + timedelta(days=1, hours=i),
            first_seen=first_seen,
        )
        for i in range(count)
    ]


def as_raw(rows: list[ExistingScreening]) -> list[RawScreening]:
    return [
        RawScreening(title=row.title, start_time=row.start_time, booking_url="https://example.com")
        for row in rows
    ]


class TestComputeDiff:
    def test_identical_scrape_is_unchanged(self) -> None:
        rows = existing_rows(3)
        report = compute_diff("rio", "Rio", rows, as_raw(rows), now=NOW)
        assert report.unchanged_count == 3
        assert report.added == []
        assert report.removed == []
        assert not report.has_issues

    def test_matches_on_canonical_title(self) -> None:
        rows = [ExistingScreening(title="The Dark Knight", start_time=NOW + timedelta(days=1))]
        proposed = [RawScreening(title="dark knight!!", start_time=NOW + timedelta(days=1), booking_url="x")]
        report = compute_diff("rio", "Rio", rows, proposed, now=NOW)
        assert report.unchanged_count == 1

    def test_same_title_different_time_is_added_and_removed(self) -> None:
        rows = [ExistingScreening(title="Vertigo", start_time=NOW + timedelta(days=1))]
        proposed = [RawScreening(title="Vertigo", start_time=NOW + timedelta(days=1, hours=2), booking_url="x")]
        report = compute_diff("rio", "Rio", rows, proposed, now=NOW)
        assert report.added_count == 1
        assert report.removed_count == 1

    def test_proposed_outside_window_are_ignored(self) -> None:
        proposed = [
            RawScreening(title="Far", start_time=NOW + timedelta(days=45), booking_url="x"),
            RawScreening(title="Near", start_time=NOW + timedelta(days=2), booking_url="x"),
        ]
        report = compute_diff("rio", "Rio", [], proposed, now=NOW, window_days=30)
        assert report.new_count == 1
        assert [e.title for e in report.added] == ["Near"]

    def test_all_removed_blocks(self) -> None:
        report = compute_diff("rio", "Rio", existing_rows(10), [], now=NOW)
        assert report.has_warning(SCRAPER_BROKEN)
        assert report.should_block

    def test_forty_percent_removed_warns_once_without_blocking(self) -> None:
        rows = existing_rows(10)
        rows[9].first_seen = NOW - timedelta(hours=6)
        kept = rows[:6]

        report = compute_diff("rio", "Rio", rows, as_raw(kept), now=NOW)

        assert report.removed_count == 4
        assert not report.should_block
        assert [w.code for w in report.warnings] == [RECENTLY_ADDED_THEN_REMOVED]

    def test_large_drop_warns(self) -> None:
        rows = existing_rows(10)
        report = compute_diff("rio", "Rio", rows, as_raw(rows[:3]), now=NOW)
        assert report.has_warning(LARGE_DROP)
        assert not report.should_block

    def test_large_drop_needs_enough_existing(self) -> None:
        rows = existing_rows(4)
        report = compute_diff("rio", "Rio", rows, as_raw(rows[:1]), now=NOW)
        assert not report.has_warning(LARGE_DROP)

    def test_christmas_day_addition_warns(self) -> None:
        now = datetime(2026, 12, 10, 12, 0, tzinfo=timezone.utc)
        proposed = [
            RawScreening(
                title="It's a Wonderful Life",
                start_time=datetime(2026, 12, 25, 15, 0, tzinfo=LONDON_TZ),
                booking_url="x",
            )
        ]
        report = compute_diff("rio", "Rio", [], proposed, now=now)
        assert report.has_warning(HOLIDAY)
        assert not report.should_block


class TestEscalate:
    def large_drop_report(self):
        rows = existing_rows(10)
        return compute_diff("rio", "Rio", rows, as_raw(rows[:3]), now=NOW)

    def test_disabled_never_blocks(self) -> None:
        report = self.large_drop_report()
        assert escalate(report, previous_streak=10, runs=0) == 11
        assert not report.should_block

    def test_streak_reaching_limit_blocks(self) -> None:
        report = self.large_drop_report()
        assert escalate(report, previous_streak=1, runs=2) == 2
        assert report.has_warning(REPEATED_LARGE_DROP)
        assert report.should_block

    def test_clean_run_resets_streak(self) -> None:
        rows = existing_rows(3)
        report = compute_diff("rio", "Rio", rows, as_raw(rows), now=NOW)
        assert escalate(report, previous_streak=5, runs=2) == 0
        assert not report.should_block
