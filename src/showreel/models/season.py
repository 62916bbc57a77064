"""Season models: curated film groupings independent of showtimes."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from showreel.models.base import Base, StringList, TimestampMixin, UTCDateTime


class Season(Base, TimestampMixin):
    """
    A curated grouping such as a director retrospective.

    ``raw_film_titles`` keeps the member titles exactly as the cinema lists
    them, so films resolved later can still be linked.
    """

    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    slug: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    director_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    poster_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    source_cinemas: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    raw_film_titles: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    scraped_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"<Season(slug={self.slug!r}, name={self.name!r})>"


class SeasonFilm(Base):
    """Join row linking a film to a season."""

    __tablename__ = "season_films"

    season_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("seasons.id", ondelete="CASCADE"),
        primary_key=True,
    )
    film_id: Mapped[str] = mapped_column(
        String(150),
        ForeignKey("films.id", ondelete="CASCADE"),
        primary_key=True,
    )
    order_index: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<SeasonFilm(season_id={self.season_id!r}, film_id={self.film_id!r})>"
