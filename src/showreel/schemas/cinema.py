"""Pydantic schemas for cinema data."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CinemaResponse(BaseModel):
    """Cinema response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    short_name: str | None = None
    chain: str | None = None
    website: str | None = None
    address: str | None = None
    area: str | None = None
    postcode: str | None = None
    features: list[str] | None = None
    last_scraped_at: datetime | None = None
