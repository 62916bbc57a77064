"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from showreel.api.routes import cinemas, health, screenings
from showreel.config import settings
from showreel.logging_config import configure_logging
from showreel.tasks.scrape_job import run_scrape_all

logger = logging.getLogger(__name__)

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configure and start the scheduler
    scheduler = AsyncIOScheduler(timezone="Europe/London")
    scheduler.add_job(
        run_scrape_all,
        trigger=CronTrigger(hour=4, minute=0),
        id="daily_scrape",
        name="Daily scrape of all cinemas",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info("Scheduler started, daily scrape registered for 04:00 London time")

    yield

    # Shutdown: stop the scheduler gracefully
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")


app = FastAPI(
    title="Showreel API",
    description="Canonical London cinema screenings",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(cinemas.router, prefix="/api", tags=["cinemas"])
app.include_router(screenings.router, prefix="/api", tags=["screenings"])


def run() -> None:
    import uvicorn

    uvicorn.run("showreel.main:app", host=settings.api_host, port=settings.api_port)
