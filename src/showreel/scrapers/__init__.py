"""Scraper registry: venue metadata and the adapter that covers each venue."""

from showreel.scrapers.base import BaseScraper, ChainScraper
from showreel.scrapers.bfi_pdf import BFI_IMAX_CONFIG, BFI_SOUTHBANK_CONFIG, BFIGuideScraper
from showreel.scrapers.close_up import CloseUpScraper
from showreel.scrapers.everyman import EVERYMAN_VENUES, EverymanChainScraper
from showreel.scrapers.lexi import LexiScraper
from showreel.scrapers.models import VenueInfo
from showreel.scrapers.prince_charles import PrinceCharlesScraper
from showreel.scrapers.regent_street import RegentStreetScraper
from showreel.scrapers.rio import RioScraper

INDEPENDENT_VENUES: list[VenueInfo] = [
    VenueInfo(
        id="prince-charles",
        name="Prince Charles Cinema",
        short_name="PCC",
        website="https://princecharlescinema.com",
        address="7 Leicester Place",
        area="Leicester Square",
        postcode="WC2H 7BY",
        features=["repertory", "35mm", "70mm"],
    ),
    VenueInfo(
        id="rio-dalston",
        name="Rio Cinema",
        short_name="Rio",
        website="https://riocinema.org.uk",
        address="107 Kingsland High Street",
        area="Dalston",
        postcode="E8 2PB",
        features=["independent", "historic", "35mm"],
    ),
    VenueInfo(
        id="close-up-cinema",
        name="Close-Up Film Centre",
        short_name="Close-Up",
        website="https://www.closeupfilmcentre.com",
        address="97 Sclater Street",
        area="Shoreditch",
        postcode="E1 6HR",
        features=["independent", "repertory", "35mm"],
    ),
    VenueInfo(
        id="regent-street-cinema",
        name="Regent Street Cinema",
        short_name="Regent St",
        website="https://www.regentstreetcinema.com",
        address="307 Regent Street",
        area="Marylebone",
        postcode="W1B 2HW",
        features=["historic", "35mm", "16mm"],
    ),
    VenueInfo(
        id="lexi",
        name="The Lexi Cinema",
        short_name="Lexi",
        website="https://thelexicinema.co.uk",
        address="194b Chamberlayne Road",
        area="Kensal Rise",
        postcode="NW10 5SN",
        features=["independent", "charity", "single_screen", "repertory"],
    ),
    VenueInfo(
        id="bfi-southbank",
        name="BFI Southbank",
        short_name="BFI",
        chain="bfi",
        website="https://whatson.bfi.org.uk",
        address="Belvedere Road",
        area="South Bank",
        postcode="SE1 8XT",
        features=["repertory", "35mm", "70mm"],
    ),
    VenueInfo(
        id="bfi-imax",
        name="BFI IMAX",
        short_name="BFI IMAX",
        chain="bfi",
        website="https://whatson.bfi.org.uk",
        address="1 Charlie Chaplin Walk",
        area="Waterloo",
        postcode="SE1 8XR",
        features=["imax", "70mm"],
    ),
]

VENUES: dict[str, VenueInfo] = {venue.id: venue for venue in INDEPENDENT_VENUES + EVERYMAN_VENUES}

# Scraper type names as stored on Cinema.scraper_type
SCRAPER_REGISTRY: dict[str, type[BaseScraper]] = {
    "prince-charles": PrinceCharlesScraper,
    "rio": RioScraper,
    "close-up": CloseUpScraper,
    "regent-street": RegentStreetScraper,
    "lexi": LexiScraper,
    "bfi-pdf": BFIGuideScraper,
}

# Venue id → scraper type for single-venue adapters
VENUE_SCRAPER_TYPES: dict[str, str] = {
    "prince-charles": "prince-charles",
    "rio-dalston": "rio",
    "close-up-cinema": "close-up",
    "regent-street-cinema": "regent-street",
    "lexi": "lexi",
    "bfi-southbank": "bfi-pdf",
    "bfi-imax": "bfi-pdf",
}

# Venues one adapter class covers through a per-venue config
MULTI_VENUE_CONFIGS = {
    "bfi-southbank": BFI_SOUTHBANK_CONFIG,
    "bfi-imax": BFI_IMAX_CONFIG,
}

CHAIN_REGISTRY: dict[str, type[ChainScraper]] = {
    "everyman": EverymanChainScraper,
}


def get_scraper(venue_id: str, **kwargs) -> BaseScraper | None:
    """
    Get a scraper instance for a venue.

    Args:
        venue_id: Venue id (e.g. "rio-dalston", "bfi-imax")
        **kwargs: Passed to the scraper (e.g. ``browser``)

    Returns:
        Scraper instance or None if no single-venue adapter covers it
    """
    scraper_type = VENUE_SCRAPER_TYPES.get(venue_id)
    scraper_class = SCRAPER_REGISTRY.get(scraper_type) if scraper_type else None
    if scraper_class is None:
        return None
    return scraper_class(config=MULTI_VENUE_CONFIGS.get(venue_id), **kwargs)


def get_chain_scraper(chain_id: str) -> ChainScraper | None:
    chain_class = CHAIN_REGISTRY.get(chain_id)
    return chain_class() if chain_class else None


__all__ = [
    "CHAIN_REGISTRY",
    "SCRAPER_REGISTRY",
    "VENUES",
    "VENUE_SCRAPER_TYPES",
    "BaseScraper",
    "ChainScraper",
    "INDEPENDENT_VENUES",
    "MULTI_VENUE_CONFIGS",
    "get_chain_scraper",
    "get_scraper",
]
