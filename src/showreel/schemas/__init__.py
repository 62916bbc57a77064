"""Pydantic schemas for API requests and responses."""

from showreel.schemas.cinema import CinemaResponse
from showreel.schemas.film import FilmResponse, FilmWithScreeningCount
from showreel.schemas.screening import (
    CinemaWithScreenings,
    FilmWithCinemas,
    ScreeningsQuery,
    ScreeningsResponse,
    ScreeningTimeResponse,
)

__all__ = [
    "CinemaResponse",
    "FilmResponse",
    "FilmWithScreeningCount",
    "ScreeningTimeResponse",
    "CinemaWithScreenings",
    "FilmWithCinemas",
    "ScreeningsQuery",
    "ScreeningsResponse",
]
