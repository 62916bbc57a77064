"""Pydantic schemas for film data."""

from pydantic import BaseModel, ConfigDict


class FilmBase(BaseModel):
    """Base film schema with common fields."""

    title: str
    year: int | None = None
    directors: list[str] | None = None
    countries: list[str] | None = None
    genres: list[str] | None = None
    runtime: int | None = None
    certification: str | None = None
    synopsis: str | None = None
    poster_url: str | None = None
    tmdb_id: int | None = None
    is_repertory: bool = False
    decade: str | None = None


class FilmResponse(FilmBase):
    """Film response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str


class FilmWithScreeningCount(FilmResponse):
    """Film response with screening count for search results."""

    screening_count: int
