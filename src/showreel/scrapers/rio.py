"""Rio Cinema scraper using embedded JSON in page HTML."""

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.embedded_json import extract_assigned_json
from showreel.scrapers.models import RawScreening, ScraperConfig

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

BASE_URL = "https://riocinema.org.uk"
WHATS_ON_URL = f"{BASE_URL}/Rio.dll/WhatsOn"

# Performance flag → (event type, description)
_PERF_FLAGS: dict[str, tuple[str, str]] = {
    "QA": ("q_and_a", "Q&A"),
    "CB": ("parent_baby", "Carers & Babies"),
    "RS": ("relaxed", "Relaxed Screening"),
    "FF": ("kids", "Family Flicks"),
    "CM": ("classic", "Classic Matinee"),
    "PP": ("special", "Pink Palace"),
    "SP": ("special", "Special"),
    "HoH": ("subtitled", "Hard of Hearing"),
}

RIO_CONFIG = ScraperConfig(
    cinema_id="rio-dalston",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=1.5,
)


class RioScraper(BaseScraper):
    """
    Scraper for Rio Cinema (Dalston).

    The What's On page embeds all film/performance data as a JavaScript
    ``var Events = {...}`` assignment, so no JS rendering is needed.
    """

    config = RIO_CONFIG

    async def fetch_pages(self) -> list[str]:
        return [await self.fetch_url(WHATS_ON_URL)]

    def parse_page(self, html: str) -> list[RawScreening]:
        """Extract the embedded Events JSON and turn it into RawScreenings."""
        events_data = extract_assigned_json(html, "Events")
        if events_data is None:
            logger.warning("Rio Cinema: Could not find 'var Events' in page HTML")
            return []

        films = events_data.get("Events", []) if isinstance(events_data, dict) else events_data
        logger.debug(f"Rio Cinema: {len(films)} films found in embedded JSON")

        screenings: list[RawScreening] = []
        for film in films:
            try:
                screenings.extend(self._parse_film(film))
            except Exception as e:
                logger.warning(f"Rio Cinema: Failed to parse film entry: {e}")

        return screenings

    def _parse_film(self, film: dict) -> list[RawScreening]:
        title = str(film.get("Title") or "").strip()
        if not title:
            return []

        year = None
        if str(film.get("Year") or "").isdigit():
            year = int(film["Year"])
        director = film.get("Director") or None
        poster_url = film.get("ImageURL") or None

        screenings: list[RawScreening] = []
        for perf in film.get("Performances", []):
            try:
                screening = self._parse_performance(film, title, perf)
            except Exception as e:
                logger.warning(f"Rio Cinema: Failed to parse performance for '{title}': {e}")
                continue
            if screening:
                screening.year = year
                screening.director = director
                screening.poster_url = poster_url
                screenings.append(screening)

        return screenings

    def _parse_performance(self, film: dict, title: str, perf: dict) -> RawScreening | None:
        start_date_str = perf.get("StartDate", "")  # "2026-02-16"
        start_time_str = perf.get("StartTime", "")  # "1100" (= 11:00), "2040" (= 20:40)

        if not start_date_str or not start_time_str:
            return None

        try:
            perf_date = date.fromisoformat(start_date_str)
        except ValueError:
            return None

        time_str = str(start_time_str).zfill(4)
        try:
            hour = int(time_str[:2])
            minute = int(time_str[2:])
        except (ValueError, IndexError):
            return None

        start_time = datetime(
            perf_date.year,
            perf_date.month,
            perf_date.day,
            hour,
            minute,
            tzinfo=LONDON_TZ,
        )

        # Performance URL is relative: "Booking?Booking=TSelectItems..."
        perf_url = perf.get("URL", "")
        if perf_url:
            booking_url = perf_url if perf_url.startswith("http") else f"{BASE_URL}/Rio.dll/{perf_url}"
        else:
            booking_url = f"{BASE_URL}/Rio.dll/WhatsOn?f={film.get('ID', '')}"

        event_type, event_description = self._event_from_flags(perf)
        availability = None
        if perf.get("IsSoldOut") == "Y":
            availability = "sold_out"
        elif perf.get("IsLimited") == "Y":
            availability = "limited"

        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=booking_url,
            screen=perf.get("AuditoriumName") or None,
            format="35mm" if perf.get("Is35mm") == "Y" else None,
            event_type=event_type,
            event_description=event_description,
            availability=availability,
            source_id=f"rio-dalston-{film.get('ID', '')}-{start_time.isoformat()}",
        )

    def _event_from_flags(self, perf: dict) -> tuple[str | None, str | None]:
        labels = [(kind, label) for flag, (kind, label) in _PERF_FLAGS.items() if perf.get(flag) == "Y"]
        if not labels:
            return None, None
        return labels[0][0], ", ".join(label for _, label in labels)
