"""Screenings API endpoints."""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from showreel.database import get_db
from showreel.models import Cinema, Film, Screening
from showreel.schemas import (
    CinemaResponse,
    CinemaWithScreenings,
    FilmWithCinemas,
    FilmWithScreeningCount,
    ScreeningsQuery,
    ScreeningsResponse,
    ScreeningTimeResponse,
)
from showreel.services.validation import LONDON_TZ

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_RANGE_DAYS = 7


@router.get("/screenings", response_model=ScreeningsResponse)
async def get_screenings(
    date_from: date | None = Query(None, description="First day, London time (default: today)"),
    date_to: date | None = Query(None, description="Last day inclusive (default: a week from date_from)"),
    cinema_id: str | None = Query(None, description="Only this cinema"),
    film_id: str | None = Query(None, description="Only this film"),
    db: AsyncSession = Depends(get_db),
) -> ScreeningsResponse:
    """
    Canonical screenings within a date range.

    Groups results by film, then by cinema, sorted by film popularity
    (number of screenings).
    """
    date_from = date_from or datetime.now(LONDON_TZ).date()
    date_to = date_to or date_from + timedelta(days=DEFAULT_RANGE_DAYS)
    if date_to < date_from:
        raise HTTPException(status_code=422, detail="date_to must not be before date_from")

    datetime_from = datetime.combine(date_from, time.min, tzinfo=LONDON_TZ)
    datetime_to = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=LONDON_TZ)

    stmt = (
        select(Screening)
        .options(
            selectinload(Screening.cinema),
            selectinload(Screening.film),
        )
        .where(
            Screening.start_time >= datetime_from,
            Screening.start_time < datetime_to,
        )
        .order_by(Screening.start_time)
    )
    if cinema_id:
        stmt = stmt.where(Screening.cinema_id == cinema_id)
    if film_id:
        stmt = stmt.where(Screening.film_id == film_id)

    result = await db.execute(stmt)
    screenings = result.scalars().all()

    # Group screenings by film, then by cinema
    film_groups: dict[str, dict[str, list[Screening]]] = defaultdict(lambda: defaultdict(list))
    film_objects: dict[str, Film] = {}
    cinema_objects: dict[str, Cinema] = {}

    for screening in screenings:
        film_groups[screening.film_id][screening.cinema_id].append(screening)
        film_objects[screening.film_id] = screening.film
        cinema_objects[screening.cinema_id] = screening.cinema

    films_with_cinemas: list[FilmWithCinemas] = []
    for group_film_id, cinema_groups in film_groups.items():
        film = film_objects[group_film_id]
        total = sum(len(group) for group in cinema_groups.values())

        cinemas_with_screenings = [
            CinemaWithScreenings(
                cinema=CinemaResponse.model_validate(cinema_objects[group_cinema_id]),
                times=[ScreeningTimeResponse.model_validate(s) for s in cinema_screenings],
            )
            for group_cinema_id, cinema_screenings in cinema_groups.items()
        ]

        film_response = FilmWithScreeningCount(
            id=film.id,
            title=film.title,
            year=film.year,
            directors=film.directors,
            countries=film.countries,
            genres=film.genres,
            runtime=film.runtime,
            certification=film.certification,
            synopsis=film.synopsis,
            poster_url=film.poster_url,
            tmdb_id=film.tmdb_id,
            is_repertory=film.is_repertory,
            decade=film.decade,
            screening_count=total,
        )
        films_with_cinemas.append(FilmWithCinemas(film=film_response, cinemas=cinemas_with_screenings))

    films_with_cinemas.sort(key=lambda f: f.film.screening_count, reverse=True)

    return ScreeningsResponse(
        films=films_with_cinemas,
        total_films=len(films_with_cinemas),
        total_screenings=len(screenings),
        query=ScreeningsQuery(
            date_from=date_from,
            date_to=date_to,
            cinema_id=cinema_id,
            film_id=film_id,
        ),
    )
