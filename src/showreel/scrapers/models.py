"""Data models for scrapers."""

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class ScraperConfig:
    """Declarative per-venue scraper settings."""

    cinema_id: str
    base_url: str
    requests_per_minute: int = 10
    delay_between_requests: float = 1.0  # seconds


@dataclass
class RawScreening:
    """
    Raw screening data from a source adapter.

    This is the output format that all scrapers must return. Nothing is
    enforced here: adapters for sloppy sites may hand over a string or
    ``None`` for ``start_time``, and the validation gate decides what
    survives.
    """

    title: str  # Title as it appears on the cinema website
    start_time: datetime | str | None  # Timezone-aware showing time
    booking_url: str | None = None
    screen: str | None = None  # Screen/auditorium name
    format: str | None = None  # e.g. "35mm", "70mm", "imax"
    event_type: str | None = None  # e.g. "q_and_a", "kids", "premiere"
    event_description: str | None = None
    availability: str | None = None  # "available", "limited", "sold_out"
    source_id: str | None = None  # Stable id from the source, if any

    # Film hints some sources provide
    year: int | None = None
    director: str | None = None
    poster_url: str | None = None


@dataclass
class RawSeasonFilm:
    title: str
    year: int | None = None
    director: str | None = None
    order_index: int | None = None
    film_url: str | None = None


@dataclass
class RawSeason:
    """A season as scraped from a cinema, before persistence."""

    name: str
    website_url: str
    source_cinema: str
    films: list[RawSeasonFilm] = field(default_factory=list)
    description: str | None = None
    director_name: str | None = None
    poster_url: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    source_id: str | None = None


@dataclass
class SeasonScraperConfig:
    cinema_id: str
    base_url: str
    seasons_path: str = "/"
    requests_per_minute: int = 10
    delay_between_requests: float = 1.0


@dataclass
class VenueInfo:
    """Static venue metadata used to seed the ``cinemas`` table."""

    id: str
    name: str
    short_name: str | None = None
    chain: str | None = None
    website: str | None = None
    address: str | None = None
    area: str | None = None
    postcode: str | None = None
    features: list[str] = field(default_factory=list)
    active: bool = True
