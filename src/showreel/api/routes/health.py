"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.database import get_db
from showreel.models import Cinema

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """
    Health check endpoint.

    Returns:
        Status plus the most recent successful scrape across all cinemas
    """
    result = await db.execute(select(func.max(Cinema.last_scraped_at)))
    last_scraped_at = result.scalar_one_or_none()
    return {
        "status": "ok",
        "last_scraped_at": last_scraped_at.isoformat() if last_scraped_at else None,
    }
