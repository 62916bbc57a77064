"""Scheduled scrape job that runs every registered venue and season source."""

import logging

from showreel.database import session_scope
from showreel.scrapers import (
    CHAIN_REGISTRY,
    INDEPENDENT_VENUES,
    MULTI_VENUE_CONFIGS,
    VENUES,
    get_chain_scraper,
    get_scraper,
)
from showreel.scrapers.browser import BrowserSession
from showreel.scrapers.models import RawScreening
from showreel.scrapers.seasons import SEASON_SCRAPERS
from showreel.services.season_linker import SeasonLinker
from showreel.services.season_pipeline import process_seasons
from showreel.tasks.runner import (
    ChainConfig,
    MultiVenueConfig,
    RunnerConfig,
    RunnerOptions,
    RunnerResult,
    ScraperRunner,
    SingleVenueConfig,
)

logger = logging.getLogger(__name__)


def independent_configs(venue_ids: list[str] | None = None) -> list[RunnerConfig]:
    """
    Runner configs for every single-venue adapter.

    Venues sharing one adapter class through MULTI_VENUE_CONFIGS are grouped
    into a single MultiVenueConfig. Its scrapers share a parsed-document memo
    that lives as long as the returned configs, i.e. one run.
    """
    wanted = [v for v in INDEPENDENT_VENUES if v.active and (not venue_ids or v.id in venue_ids)]

    configs: list[RunnerConfig] = []
    multi = [v for v in wanted if v.id in MULTI_VENUE_CONFIGS]
    if multi:
        parsed_guides: dict[str, list[RawScreening]] = {}
        configs.append(
            MultiVenueConfig(
                venues=multi,
                create_scraper=lambda venue_id, **kwargs: get_scraper(
                    venue_id, parsed_guides=parsed_guides, **kwargs
                ),
            )
        )
    for venue in wanted:
        if venue.id in MULTI_VENUE_CONFIGS:
            continue
        configs.append(
            SingleVenueConfig(
                venue=venue,
                create_scraper=lambda venue_id=venue.id, **kwargs: get_scraper(venue_id, **kwargs),
            )
        )
    return configs


def chain_configs(chain_ids: list[str] | None = None) -> list[RunnerConfig]:
    configs: list[RunnerConfig] = []
    for chain_id in CHAIN_REGISTRY:
        if chain_ids and chain_id not in chain_ids:
            continue
        venues = [v for v in VENUES.values() if v.chain == chain_id]
        configs.append(
            ChainConfig(
                chain_name=chain_id,
                venues=venues,
                create_scraper=lambda chain_id=chain_id: get_chain_scraper(chain_id),
            )
        )
    return configs


async def run_season_scrapes(linker: SeasonLinker, cinema_ids: list[str] | None = None) -> None:
    """Scrape seasons before screenings so new screenings link straight away."""
    for cinema_id, scraper_class in SEASON_SCRAPERS.items():
        if cinema_ids and cinema_id not in cinema_ids:
            continue
        try:
            seasons = await scraper_class().scrape()
            async with session_scope() as session:
                await process_seasons(session, seasons, linker=linker)
        except Exception as e:
            logger.error(f"Error scraping seasons for {cinema_id}: {e}", exc_info=True)


async def run_configs(
    configs: list[RunnerConfig],
    options: RunnerOptions | None = None,
    include_seasons: bool = True,
) -> list[RunnerResult]:
    """Run ``configs`` one after another with a shared browser and season cache."""
    linker = SeasonLinker()
    results: list[RunnerResult] = []

    async with BrowserSession() as browser:
        if include_seasons:
            await run_season_scrapes(linker)

        runner = ScraperRunner(options, browser=browser, linker=linker)
        for config in configs:
            results.append(await runner.run(config))
    return results


async def run_scrape_all() -> None:
    """Scrape every registered venue and upsert into the database.

    Creates its own DB sessions so it can be called from the scheduler
    or at startup without depending on a request context.
    """
    logger.info("Starting scheduled scrape for all cinemas")

    results = await run_configs(independent_configs() + chain_configs())

    successes = sum(r.total_venues_succeeded for r in results)
    failures = sum(r.total_venues_failed for r in results)
    added = sum(r.total_screenings_added for r in results)
    updated = sum(r.total_screenings_updated for r in results)

    logger.info(
        f"Scheduled scrape complete: {successes} succeeded, {failures} failed, "
        f"{added} new screenings, {updated} updated"
    )
