"""Tests for building runner configs from the venue registry."""

from showreel.scrapers import get_scraper
from showreel.scrapers.bfi_pdf import BFIGuideScraper
from showreel.scrapers.everyman import EverymanChainScraper
from showreel.scrapers.rio import RioScraper
from showreel.tasks.runner import ChainConfig, MultiVenueConfig, SingleVenueConfig
from showreel.tasks.scrape_job import chain_configs, independent_configs


class TestIndependentConfigs:
    def test_bfi_venues_share_one_multi_venue_config(self) -> None:
        multi, rio = independent_configs(["rio-dalston", "bfi-southbank", "bfi-imax"])

        assert isinstance(multi, MultiVenueConfig)
        assert {v.id for v in multi.venues} == {"bfi-southbank", "bfi-imax"}
        assert isinstance(rio, SingleVenueConfig)
        assert rio.venue.id == "rio-dalston"

    def test_factories_build_the_right_adapters(self) -> None:
        multi, rio = independent_configs(["rio-dalston", "bfi-imax"])

        imax = multi.create_scraper("bfi-imax", browser=None)
        assert isinstance(imax, BFIGuideScraper)
        assert imax.cinema_id == "bfi-imax"
        assert isinstance(rio.create_scraper(browser=None), RioScraper)

    def test_bfi_venues_share_parsed_guides_within_one_run(self) -> None:
        [multi] = independent_configs(["bfi-southbank", "bfi-imax"])
        southbank = multi.create_scraper("bfi-southbank", browser=None)
        imax = multi.create_scraper("bfi-imax", browser=None)

        southbank.parsed_guides["abc123"] = []
        assert imax.parsed_guides is southbank.parsed_guides

        [next_run] = independent_configs(["bfi-southbank"])
        assert next_run.create_scraper("bfi-southbank", browser=None).parsed_guides == {}

    def test_standalone_bfi_scraper_has_its_own_memo(self) -> None:
        assert BFIGuideScraper().parsed_guides is not BFIGuideScraper().parsed_guides

    def test_all_venues(self) -> None:
        venue_ids = set()
        for config in independent_configs():
            if isinstance(config, MultiVenueConfig):
                venue_ids.update(v.id for v in config.venues)
            else:
                venue_ids.add(config.venue.id)
        assert {"prince-charles", "rio-dalston", "lexi", "bfi-southbank"} <= venue_ids


class TestChainConfigs:
    def test_everyman(self) -> None:
        [config] = chain_configs()
        assert isinstance(config, ChainConfig)
        assert config.chain_name == "everyman"
        assert "everyman-hampstead" in {v.id for v in config.venues}
        assert isinstance(config.create_scraper(), EverymanChainScraper)

    def test_unknown_chain(self) -> None:
        assert chain_configs(["curzon"]) == []


def test_get_scraper_unknown_venue() -> None:
    assert get_scraper("everyman-hampstead") is None
