"""Insert-or-update of canonical screenings."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Screening
from showreel.scrapers.models import RawScreening
from showreel.services.classifier import EventClassification
from showreel.services.validation import parse_start_time

logger = logging.getLogger(__name__)


def screening_fields(raw: RawScreening, event: EventClassification | None) -> dict:
    """
    Mutable screening columns for a raw record.

    Scraper-supplied event type and format win; classification only fills
    what the scraper left empty.
    """
    event = event or EventClassification()
    event_type = raw.event_type or (event.event_types[0] if event.event_types else None)

    description = raw.event_description
    if description is None and not raw.event_type and len(event.event_types) > 1:
        description = f"Also: {', '.join(event.event_types[1:])}"

    return {
        "format": raw.format or event.format,
        "screen": raw.screen,
        "event_type": event_type,
        "event_description": description,
        "is_special_event": bool(event_type),
        "is_3d": event.is_3d,
        "has_subtitles": event.has_subtitles,
        "has_audio_description": event.has_audio_description,
        "is_relaxed": event.is_relaxed,
        "booking_url": raw.booking_url,
    }


async def upsert_screening(
    session: AsyncSession,
    film_id: str,
    cinema_id: str,
    raw: RawScreening,
    event: EventClassification | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Write one screening keyed on (film, cinema, exact start time).

    Returns:
        True if a row was inserted, False if an existing row was updated
    """
    now = now or datetime.now(timezone.utc)
    start_time = parse_start_time(raw.start_time)
    if start_time is None:
        raise ValueError(f"Screening '{raw.title}' has no usable start time")

    result = await session.execute(
        select(Screening).where(
            Screening.film_id == film_id,
            Screening.cinema_id == cinema_id,
            Screening.start_time == start_time,
        )
    )
    existing = result.scalar_one_or_none()
    fields = screening_fields(raw, event)

    if existing:
        for name, value in fields.items():
            setattr(existing, name, value)
        if raw.availability:
            existing.availability = raw.availability
        existing.scraped_at = now
        await session.flush()
        return False

    session.add(
        Screening(
            film_id=film_id,
            cinema_id=cinema_id,
            start_time=start_time,
            availability=raw.availability,
            source_id=raw.source_id,
            raw_title=raw.title,
            scraped_at=now,
            **fields,
        )
    )
    await session.flush()
    return True
