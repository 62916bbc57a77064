"""Cinema API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.database import get_db
from showreel.models.cinema import Cinema
from showreel.schemas.cinema import CinemaResponse

router = APIRouter()


@router.get("/cinemas", response_model=list[CinemaResponse])
async def get_cinemas(
    chain: str | None = Query(default=None, description="Only venues of this chain"),
    db: AsyncSession = Depends(get_db),
) -> list[Cinema]:
    """
    Get list of cinemas.

    Args:
        chain: Optional chain id (e.g. "everyman")
        db: Database session

    Returns:
        List of cinema objects
    """
    query = select(Cinema).order_by(Cinema.name)
    if chain:
        query = query.where(Cinema.chain == chain)
    result = await db.execute(query)
    return list(result.scalars().all())
