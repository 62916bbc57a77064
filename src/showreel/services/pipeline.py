"""The screening pipeline: validate, diff, resolve, upsert, link.

This function ONLY ADDS or UPDATES screenings. It never deletes one because
a later scrape omitted it; a scrape that would wipe a venue is blocked by
the diff detector before anything is written.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from showreel.config import settings
from showreel.exceptions import PipelineBlockedError
from showreel.models import Cinema
from showreel.scrapers.models import RawScreening
from showreel.services.classifier import EventClassifier, TitleClassifier
from showreel.services.film_cache import FilmCache
from showreel.services.film_resolver import FilmResolver
from showreel.services.posters import PosterService
from showreel.services.scrape_diff import BLOCKING_CODES, STREAK_KEY, ScrapeDiffReport, detect_changes, escalate
from showreel.services.screening_store import upsert_screening
from showreel.services.season_linker import SeasonLinker
from showreel.services.tmdb_client import TMDbClient
from showreel.services.validation import validate_screenings
from showreel.utils.text import canonicalize

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    cinema_id: str
    added: int = 0
    updated: int = 0
    failed: int = 0
    rejected: int = 0
    blocked: bool = False
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    diff_report: ScrapeDiffReport | None = None

    @property
    def warnings(self) -> list[str]:
        if self.diff_report is None:
            return []
        return [w.code for w in self.diff_report.warnings]


@dataclass
class FilmGroup:
    title: str  # Extracted film title shared by the group
    screenings: list[RawScreening] = field(default_factory=list)


async def group_by_film(
    screenings: list[RawScreening],
    resolver: FilmResolver,
) -> dict[str, FilmGroup]:
    """
    Group screenings whose extracted titles canonicalize to the same key.

    Each distinct raw title goes through title extraction once.
    """
    extracted: dict[str, str] = {}
    for raw_title in dict.fromkeys(s.title for s in screenings):
        extracted[raw_title] = await resolver.extract_title(raw_title)
        if extracted[raw_title] != raw_title:
            logger.debug(f"Cleaned: '{raw_title}' -> '{extracted[raw_title]}'")

    groups: dict[str, FilmGroup] = {}
    for screening in screenings:
        title = extracted[screening.title]
        key = canonicalize(title)
        groups.setdefault(key, FilmGroup(title=title)).screenings.append(screening)
    return groups


def _needs_event_classification(screening: RawScreening) -> bool:
    return not screening.event_type and not screening.format


def _escalation_streak(cinema: Cinema | None, report: ScrapeDiffReport) -> int | None:
    """New LARGE_DROP streak for the venue; None when escalation is off."""
    if cinema is None or settings.warning_escalation_runs <= 0:
        return None
    return escalate(report, int((cinema.scraper_config or {}).get(STREAK_KEY, 0)))


def _store_streak(cinema: Cinema | None, streak: int | None) -> None:
    if cinema is None or streak is None:
        return
    config = dict(cinema.scraper_config or {})
    if streak != config.get(STREAK_KEY, 0):
        config[STREAK_KEY] = streak
        cinema.scraper_config = config


async def process_screenings(
    session: AsyncSession,
    cinema_id: str,
    raw_screenings: list[RawScreening],
    *,
    use_validation: bool = True,
    raise_on_block: bool = False,
    tmdb: TMDbClient | None = None,
    posters: PosterService | None = None,
    classifier: TitleClassifier | None = None,
    event_classifier: EventClassifier | None = None,
    linker: SeasonLinker | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    """
    Process raw screenings for one venue through the full pipeline.

    Args:
        session: Session the caller commits
        cinema_id: Venue the screenings belong to
        raw_screenings: Adapter output
        use_validation: Run the validation gate (off only for trusted input)
        raise_on_block: Raise PipelineBlockedError instead of returning a blocked result
        tmdb, posters, classifier, event_classifier: Enrichment services
        linker: Season linker whose cache outlives this call
        now: Reference time for validation and diffing

    Returns:
        PipelineResult with added/updated/failed/rejected counts
    """
    now = now or datetime.now(timezone.utc)
    logger.info(f"Processing {len(raw_screenings)} screenings for {cinema_id}")

    rejected = 0
    if use_validation:
        validation = validate_screenings(raw_screenings, now=now)
        screenings = validation.valid
        rejected = validation.summary.rejected
    else:
        screenings = list(raw_screenings)

    result = PipelineResult(cinema_id=cinema_id, rejected=rejected, scraped_at=now)

    report = await detect_changes(session, cinema_id, screenings, now=now)
    cinema = await session.get(Cinema, cinema_id)
    streak = _escalation_streak(cinema, report)
    result.diff_report = report

    # A blocked run writes nothing, not even the venue's warning streak
    if report.should_block:
        reason = next(w.message for w in report.warnings if w.code in BLOCKING_CODES)
        logger.error(f"BLOCKED {cinema_id}: {reason}")
        if raise_on_block:
            raise PipelineBlockedError(cinema_id, reason)
        result.blocked = True
        result.failed = len(screenings)
        return result

    _store_streak(cinema, streak)

    classifier = classifier or TitleClassifier()
    event_classifier = event_classifier or EventClassifier()
    linker = linker or SeasonLinker()
    cache = await FilmCache.load(session)
    resolver = FilmResolver(session, cache, tmdb=tmdb, posters=posters, classifier=classifier)

    groups = await group_by_film(screenings, resolver)
    logger.info(f"{len(groups)} unique films from {len(screenings)} screenings")

    for key, group in groups.items():
        first = group.screenings[0]
        snapshot = cache.snapshot()
        added = updated = 0
        try:
            # One savepoint per film so a failed flush only loses this group
            async with session.begin_nested():
                film = await resolver.get_or_create_film(group.title, first.year, first.director, first.poster_url)
                await linker.link_film_to_matching_seasons(session, film.id, group.title)

                for screening in group.screenings:
                    event = None
                    if _needs_event_classification(screening):
                        event = await event_classifier.classify(screening.title)
                    if await upsert_screening(session, film.id, cinema_id, screening, event, now=now):
                        added += 1
                    else:
                        updated += 1
        except Exception as e:
            logger.error(f"Error processing film '{key}' for {cinema_id}: {e}", exc_info=True)
            await cache.rollback_to(snapshot, session)
            result.failed += len(group.screenings)
            continue

        result.added += added
        result.updated += updated

    if cinema is not None:
        cinema.last_scraped_at = result.scraped_at
    await session.flush()

    logger.info(
        f"Pipeline complete for {cinema_id}: {result.added} added, {result.updated} updated, "
        f"{result.failed} failed, {result.rejected} rejected ({cache.stats()})"
    )
    return result
