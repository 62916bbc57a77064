"""Film model for storing canonical film metadata."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showreel.models.base import Base, StringList, TimestampMixin

if TYPE_CHECKING:
    from showreel.models.screening import Screening


class Film(Base, TimestampMixin):
    """
    Canonical film.

    Created the first time an unmatched title is seen, enriched in place
    from TMDb when a match exists. ``normalized_title`` is the canonical
    comparison key produced by ``utils.text.canonicalize``.
    """

    __tablename__ = "films"

    id: Mapped[str] = mapped_column(String(150), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    original_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # TMDb metadata
    tmdb_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True, index=True)
    imdb_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    directors: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    cast: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    countries: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    languages: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certification: Mapped[str | None] = mapped_column(String(20), nullable=True)
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)
    tagline: Mapped[str | None] = mapped_column(Text, nullable=True)
    poster_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    backdrop_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tmdb_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_repertory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    decade: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Relationships
    screenings: Mapped[list["Screening"]] = relationship(back_populates="film")

    def __repr__(self) -> str:
        return f"<Film(id={self.id!r}, title={self.title!r}, year={self.year})>"
