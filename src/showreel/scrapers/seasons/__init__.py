"""Season scrapers, keyed by cinema id."""

from showreel.scrapers.seasons.base import BaseSeasonScraper
from showreel.scrapers.seasons.close_up import CloseUpSeasonScraper

SEASON_SCRAPERS: dict[str, type[BaseSeasonScraper]] = {
    "close-up-cinema": CloseUpSeasonScraper,
}

__all__ = ["BaseSeasonScraper", "CloseUpSeasonScraper", "SEASON_SCRAPERS"]
