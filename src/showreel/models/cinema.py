"""Cinema model for storing venue information."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showreel.models.base import Base, JSONDict, StringList, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from showreel.models.screening import Screening


class Cinema(Base, TimestampMixin):
    """
    Cinema venue model.

    One bookable location. Venues belonging to a chain share a ``chain``
    value and are usually scraped by a single chain adapter.
    """

    __tablename__ = "cinemas"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    chain: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    area: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    features: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)

    # Scraper configuration
    scraper_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scraper_config: Mapped[dict | None] = mapped_column(JSONDict, nullable=True)
    last_scraped_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    screenings: Mapped[list["Screening"]] = relationship(back_populates="cinema")

    def __repr__(self) -> str:
        return f"<Cinema(id={self.id!r}, name={self.name!r})>"
