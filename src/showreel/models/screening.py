"""Screening model for film showtimes at cinemas."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showreel.models.base import Base, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from showreel.models.cinema import Cinema
    from showreel.models.film import Film


class Screening(Base, TimestampMixin):
    """
    Canonical screening.

    Unique per (film, cinema, exact start time). Rows are inserted on first
    sighting and updated on every later sighting; the scraping pipeline
    never deletes them.
    """

    __tablename__ = "screenings"
    __table_args__ = (
        UniqueConstraint(
            "film_id",
            "cinema_id",
            "start_time",
            name="uq_film_cinema_time",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign keys
    film_id: Mapped[str] = mapped_column(
        String(150),
        ForeignKey("films.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cinema_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("cinemas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    # Mutable details
    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    screen: Mapped[str | None] = mapped_column(String(100), nullable=True)
    event_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    event_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_special_event: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_3d: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_subtitles: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_audio_description: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_relaxed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    booking_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    availability: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Provenance
    source_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    raw_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    scraped_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    cinema: Mapped["Cinema"] = relationship(back_populates="screenings")
    film: Mapped["Film"] = relationship(back_populates="screenings")

    def __repr__(self) -> str:
        return (
            f"<Screening(film_id={self.film_id!r}, "
            f"cinema_id={self.cinema_id!r}, "
            f"start_time={self.start_time})>"
        )
