"""Scraper runner: health check, scrape, retry and process for one config.

A config describes which venues an adapter covers. The runner walks them
strictly in sequence, retries failing adapters with exponential backoff and
always returns a RunnerResult, even when every venue failed.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from showreel.config import settings
from showreel.database import AsyncSessionLocal
from showreel.exceptions import ScraperUnhealthyError
from showreel.models import Cinema
from showreel.scrapers.base import BaseScraper, ChainScraper
from showreel.scrapers.browser import BrowserSession
from showreel.scrapers.models import RawScreening, VenueInfo
from showreel.services.pipeline import PipelineResult, process_screenings
from showreel.services.season_linker import SeasonLinker

logger = logging.getLogger(__name__)


@dataclass
class SingleVenueConfig:
    venue: VenueInfo
    create_scraper: Callable[..., BaseScraper]  # called with browser=


@dataclass
class MultiVenueConfig:
    """One adapter class covering several venues (e.g. BFI Southbank and IMAX)."""

    venues: list[VenueInfo]
    create_scraper: Callable[..., BaseScraper]  # called with the venue id and browser=


@dataclass
class ChainConfig:
    chain_name: str
    venues: list[VenueInfo]
    create_scraper: Callable[[], ChainScraper]


RunnerConfig = SingleVenueConfig | MultiVenueConfig | ChainConfig


@dataclass
class RunnerOptions:
    retry_attempts: int = field(default_factory=lambda: settings.scrape_max_retries)
    continue_on_error: bool = True
    use_validation: bool = True
    venue_ids: list[str] = field(default_factory=list)


@dataclass
class VenueResult:
    venue_id: str
    venue_name: str
    success: bool
    screenings_found: int = 0
    screenings_added: int = 0
    screenings_updated: int = 0
    screenings_failed: int = 0
    screenings_rejected: int = 0
    blocked: bool = False
    warnings: list[str] = field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None
    retry_count: int = 0


@dataclass
class RunnerResult:
    started_at: datetime
    completed_at: datetime | None = None
    venue_results: list[VenueResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.venue_results)

    @property
    def duration_ms(self) -> int:
        if self.completed_at is None:
            return 0
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    @property
    def total_screenings_found(self) -> int:
        return sum(r.screenings_found for r in self.venue_results)

    @property
    def total_screenings_added(self) -> int:
        return sum(r.screenings_added for r in self.venue_results)

    @property
    def total_screenings_updated(self) -> int:
        return sum(r.screenings_updated for r in self.venue_results)

    @property
    def total_venues_succeeded(self) -> int:
        return sum(1 for r in self.venue_results if r.success)

    @property
    def total_venues_failed(self) -> int:
        return sum(1 for r in self.venue_results if not r.success)


def _log(level: int, event: str, message: str, **data) -> None:
    logger.log(level, f"[{event}] {message}", extra={"event": event, "data": data})


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def ensure_cinema_exists(session: AsyncSession, venue: VenueInfo, scraper_type: str | None = None) -> Cinema:
    """Create the cinema row for ``venue`` if it is missing."""
    cinema = await session.get(Cinema, venue.id)
    if cinema is not None:
        return cinema

    cinema = Cinema(
        id=venue.id,
        name=venue.name,
        short_name=venue.short_name,
        chain=venue.chain,
        website=venue.website,
        address=venue.address,
        area=venue.area,
        postcode=venue.postcode,
        features=venue.features,
        scraper_type=scraper_type,
    )
    session.add(cinema)
    await session.flush()
    logger.info(f"Created cinema: {venue.name}")
    return cinema


class ScraperRunner:
    """
    Runs one config against the database.

    Args:
        session_factory: Each venue is written in its own session and committed
        browser: Shared browser session (created lazily if omitted); closed
            after each adapter
        linker: Season linker reused across venues
        pipeline_kwargs: Extra keyword arguments for process_screenings
            (enrichment clients, ``now``)
    """

    def __init__(
        self,
        options: RunnerOptions | None = None,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        browser: BrowserSession | None = None,
        linker: SeasonLinker | None = None,
        **pipeline_kwargs,
    ) -> None:
        self.options = options or RunnerOptions()
        self.session_factory = session_factory
        self.browser = browser or BrowserSession()
        self.linker = linker or SeasonLinker()
        self.pipeline_kwargs = pipeline_kwargs

    async def run(self, config: RunnerConfig) -> RunnerResult:
        result = RunnerResult(started_at=datetime.now(timezone.utc))
        data = {"type": type(config).__name__}
        if isinstance(config, ChainConfig):
            data["chain"] = config.chain_name
        _log(logging.INFO, "runner_started", "Runner started", **data)

        try:
            if isinstance(config, SingleVenueConfig):
                await self._ensure_venues([config.venue])
                result.venue_results.append(
                    await self._run_venue(config.venue, lambda: config.create_scraper(browser=self.browser))
                )
            elif isinstance(config, MultiVenueConfig):
                venues = self._filter(config.venues)
                await self._ensure_venues(venues)
                for venue in venues:
                    venue_result = await self._run_venue(
                        venue, lambda venue_id=venue.id: config.create_scraper(venue_id, browser=self.browser)
                    )
                    result.venue_results.append(venue_result)
                    if not venue_result.success and not self.options.continue_on_error:
                        break
            else:
                result.venue_results.extend(await self._run_chain(config))
        except Exception as e:
            _log(logging.ERROR, "runner_error", f"Runner error: {e}", error=str(e))

        result.completed_at = datetime.now(timezone.utc)
        _log(
            logging.INFO if result.success else logging.WARNING,
            "runner_completed",
            f"Runner complete: {result.total_venues_succeeded} succeeded, "
            f"{result.total_venues_failed} failed, {result.total_screenings_added} added",
            success=result.success,
            duration_ms=result.duration_ms,
            venues_succeeded=result.total_venues_succeeded,
            venues_failed=result.total_venues_failed,
            screenings_found=result.total_screenings_found,
            screenings_added=result.total_screenings_added,
            screenings_updated=result.total_screenings_updated,
        )
        return result

    def _filter(self, venues: list[VenueInfo]) -> list[VenueInfo]:
        if not self.options.venue_ids:
            return [v for v in venues if v.active]
        return [v for v in venues if v.id in self.options.venue_ids]

    async def _ensure_venues(self, venues: list[VenueInfo]) -> None:
        async with self.session_factory() as session:
            for venue in venues:
                await ensure_cinema_exists(session, venue)
            await session.commit()

    async def _process(self, venue_id: str, screenings: list[RawScreening]) -> PipelineResult:
        async with self.session_factory() as session:
            try:
                pipeline_result = await process_screenings(
                    session,
                    venue_id,
                    screenings,
                    use_validation=self.options.use_validation,
                    linker=self.linker,
                    **self.pipeline_kwargs,
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return pipeline_result

    async def _close_browser(self) -> None:
        if self.browser.is_open:
            await self.browser.close()

    async def _run_venue(self, venue: VenueInfo, create_scraper: Callable[[], BaseScraper]) -> VenueResult:
        start = time.monotonic()
        retry_count = 0
        last_error: Exception | None = None

        while retry_count <= self.options.retry_attempts:
            scraper = create_scraper()
            try:
                if not await scraper.health_check():
                    raise ScraperUnhealthyError(venue.id)

                _log(logging.INFO, "scrape_started", f"Scraping {venue.name}", venue_id=venue.id)
                screenings = await scraper.scrape()
                _log(
                    logging.INFO,
                    "scrape_completed",
                    f"Found {len(screenings)} screenings for {venue.name}",
                    venue_id=venue.id,
                    screenings_found=len(screenings),
                )

                pipeline_result = await self._process(venue.id, screenings)
                venue_result = self._venue_result(venue, screenings, pipeline_result, scraper.rejected_count)
                venue_result.duration_ms = _elapsed_ms(start)
                venue_result.retry_count = retry_count
                _log(
                    logging.INFO,
                    "venue_completed",
                    f"{venue.name}: {venue_result.screenings_added} added, "
                    f"{venue_result.screenings_updated} updated",
                    venue_id=venue.id,
                    screenings_found=venue_result.screenings_found,
                    added=venue_result.screenings_added,
                    updated=venue_result.screenings_updated,
                    failed=venue_result.screenings_failed,
                    blocked=venue_result.blocked,
                    duration_ms=venue_result.duration_ms,
                    retry_count=retry_count,
                )
                return venue_result
            except Exception as e:
                last_error = e
                retry_count += 1
                if retry_count <= self.options.retry_attempts:
                    _log(
                        logging.WARNING,
                        "venue_retry",
                        f"Retrying {venue.name} ({retry_count}/{self.options.retry_attempts}): {e}",
                        venue_id=venue.id,
                        attempt=retry_count,
                        max_attempts=self.options.retry_attempts,
                        error=str(e),
                    )
                    await asyncio.sleep(settings.retry_base_delay * 2 ** (retry_count - 1))
            finally:
                await self._close_browser()

        duration_ms = _elapsed_ms(start)
        _log(
            logging.ERROR,
            "venue_failed",
            f"Giving up on {venue.name}: {last_error}",
            venue_id=venue.id,
            error=str(last_error),
            retry_count=retry_count - 1,
            duration_ms=duration_ms,
        )
        return VenueResult(
            venue_id=venue.id,
            venue_name=venue.name,
            success=False,
            duration_ms=duration_ms,
            error=str(last_error),
            retry_count=retry_count - 1,
        )

    async def _run_chain(self, config: ChainConfig) -> list[VenueResult]:
        venues = self._filter(config.venues)
        await self._ensure_venues(venues)
        venue_ids = [v.id for v in venues]
        start = time.monotonic()

        scraper = config.create_scraper()
        try:
            scraped = await scraper.scrape_venues(venue_ids)
        except Exception as e:
            _log(
                logging.ERROR,
                "chain_scrape_failed",
                f"Chain scrape failed for {config.chain_name}: {e}",
                chain=config.chain_name,
                error=str(e),
            )
            return [
                VenueResult(
                    venue_id=venue.id,
                    venue_name=venue.name,
                    success=False,
                    duration_ms=_elapsed_ms(start),
                    error=str(e),
                )
                for venue in venues
            ]
        finally:
            await scraper.cleanup()

        results: list[VenueResult] = []
        for venue in venues:
            screenings = scraped.get(venue.id, [])
            try:
                pipeline_result = await self._process(venue.id, screenings)
            except Exception as e:
                logger.error(f"Error processing {venue.name}: {e}", exc_info=True)
                results.append(
                    VenueResult(
                        venue_id=venue.id,
                        venue_name=venue.name,
                        success=False,
                        screenings_found=len(screenings),
                        duration_ms=_elapsed_ms(start),
                        error=str(e),
                    )
                )
                if not self.options.continue_on_error:
                    break
                continue
            venue_result = self._venue_result(
                venue, screenings, pipeline_result, scraper.rejected_counts.get(venue.id, 0)
            )
            venue_result.duration_ms = _elapsed_ms(start)
            results.append(venue_result)
        return results

    @staticmethod
    def _venue_result(
        venue: VenueInfo,
        screenings: list[RawScreening],
        pipeline_result: PipelineResult,
        scraper_rejected: int,
    ) -> VenueResult:
        return VenueResult(
            venue_id=venue.id,
            venue_name=venue.name,
            success=not pipeline_result.blocked,
            screenings_found=len(screenings),
            screenings_added=pipeline_result.added,
            screenings_updated=pipeline_result.updated,
            screenings_failed=pipeline_result.failed,
            screenings_rejected=scraper_rejected + pipeline_result.rejected,
            blocked=pipeline_result.blocked,
            warnings=pipeline_result.warnings,
        )


async def run_scraper(config: RunnerConfig, options: RunnerOptions | None = None, **kwargs) -> RunnerResult:
    """Run ``config`` with a fresh runner; ``kwargs`` go to ScraperRunner."""
    return await ScraperRunner(options, **kwargs).run(config)
