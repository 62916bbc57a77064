"""Pydantic schemas for screening data."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from showreel.schemas.cinema import CinemaResponse
from showreel.schemas.film import FilmWithScreeningCount


class ScreeningTimeResponse(BaseModel):
    """Individual screening time response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    start_time: datetime
    screen: str | None = None
    format: str | None = None
    event_type: str | None = None
    event_description: str | None = None
    is_special_event: bool = False
    is_3d: bool = False
    has_subtitles: bool = False
    has_audio_description: bool = False
    is_relaxed: bool = False
    booking_url: str
    availability: str | None = None


class CinemaWithScreenings(BaseModel):
    """Cinema with its screening times for a specific film."""

    cinema: CinemaResponse
    times: list[ScreeningTimeResponse]


class FilmWithCinemas(BaseModel):
    """Film with all cinemas screening it."""

    film: FilmWithScreeningCount
    cinemas: list[CinemaWithScreenings]


class ScreeningsQuery(BaseModel):
    """Query parameters for screenings search."""

    date_from: date
    date_to: date
    cinema_id: str | None = None
    film_id: str | None = None


class ScreeningsResponse(BaseModel):
    """Response for screenings endpoint."""

    films: list[FilmWithCinemas]
    total_films: int
    total_screenings: int
    query: ScreeningsQuery
