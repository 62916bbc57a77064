"""Run scrapers from the command line.

Run with:
    python -m showreel.scripts.run_scrape --all
    python -m showreel.scripts.run_scrape rio-dalston lexi
    python -m showreel.scripts.run_scrape --chains everyman
"""

import argparse
import asyncio
import sys

from showreel.logging_config import configure_logging
from showreel.scrapers import CHAIN_REGISTRY, INDEPENDENT_VENUES, VENUES
from showreel.tasks.runner import RunnerOptions, RunnerResult
from showreel.tasks.scrape_job import chain_configs, independent_configs, run_configs


def list_venues() -> None:
    print("Independent venues:")
    for venue in INDEPENDENT_VENUES:
        print(f"  {venue.id:<28} {venue.name}")
    for chain_id in CHAIN_REGISTRY:
        venues = [v for v in VENUES.values() if v.chain == chain_id]
        print(f"\nChain '{chain_id}' ({len(venues)} venues):")
        for venue in venues:
            print(f"  {venue.id:<28} {venue.name}")


def print_summary(results: list[RunnerResult]) -> None:
    print()
    for result in results:
        for r in result.venue_results:
            status = "✓" if r.success else "✗"
            detail = (
                f"{r.screenings_found} found, {r.screenings_added} added, "
                f"{r.screenings_updated} updated, {r.screenings_rejected} rejected"
            )
            if r.blocked:
                detail += "  BLOCKED"
            elif r.error:
                detail = f"error: {r.error}"
            if r.warnings:
                detail += f"  warnings: {', '.join(sorted(set(r.warnings)))}"
            print(f"  {status}  {r.venue_name:<40} {detail}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Scrape cinema listings into the database.")
    parser.add_argument("venue_ids", nargs="*", metavar="VENUE_ID", help="Venues to scrape")
    parser.add_argument("--all", action="store_true", help="Scrape every registered venue")
    parser.add_argument("--list", action="store_true", help="List registered venues and exit")
    parser.add_argument(
        "--chains",
        nargs="*",
        metavar="CHAIN",
        help="Scrape chains (all chains if none named)",
    )
    parser.add_argument("--independents", action="store_true", help="Scrape every independent venue")
    parser.add_argument("--no-seasons", action="store_true", help="Skip season scrapers")
    parser.add_argument("--no-validation", action="store_true", help="Skip the validation gate")
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        metavar="N",
        help="Retry attempts per venue (default: SCRAPE_MAX_RETRIES)",
    )
    args = parser.parse_args()

    configure_logging()

    if args.list:
        list_venues()
        return

    unknown = [v for v in args.venue_ids if v not in VENUES]
    if unknown:
        parser.error(f"Unknown venue(s): {', '.join(unknown)}. Use --list to see venues.")

    configs = []
    if args.all or args.independents:
        configs.extend(independent_configs())
    if args.all or args.chains is not None:
        configs.extend(chain_configs(args.chains or None))
    if args.venue_ids:
        configs.extend(independent_configs(args.venue_ids))
        chains = {VENUES[v].chain for v in args.venue_ids if VENUES[v].chain in CHAIN_REGISTRY}
        configs.extend(chain_configs(sorted(chains)))

    if not configs:
        parser.error("Nothing to scrape: pass venue ids, --all, --chains or --independents")

    options = RunnerOptions(use_validation=not args.no_validation, venue_ids=args.venue_ids)
    if args.retries is not None:
        options.retry_attempts = args.retries

    results = asyncio.run(run_configs(configs, options, include_seasons=not args.no_seasons))
    print_summary(results)
    sys.exit(0 if all(r.success for r in results) else 1)


if __name__ == "__main__":
    main()
