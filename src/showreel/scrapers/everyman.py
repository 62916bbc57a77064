"""Everyman Cinemas chain scraper using their internal Gatsby/Boxoffice API.

Everyman uses a Movio Boxoffice (Vista Group) ticketing system. The frontend
is a Gatsby SPA that calls unauthenticated function routes to fetch schedule
and movie data at runtime.

Strategy (two-phase fetch, covering every requested venue at once):
  1. GET /schedule?theaters=…&from=…&to=…  with one ``theaters`` parameter
     per venue. Sessions come back grouped by theater, then movie ID, then
     date, with exact start times, format/accessibility tags and booking URLs.
  2. GET /movies?ids=…  once per unique movie ID across all theaters, one
     request at a time so the inter-request delay is honoured.

Booking URLs come from the "default" provider in each session's ticketing list:
  https://purchase.everymancinema.com/launch/ticketing/{uuid}
"""

import json
import logging
import re
from datetime import datetime, timedelta

from showreel.scrapers.base import ChainScraper
from showreel.scrapers.models import RawScreening, VenueInfo
from showreel.services.validation import LONDON_TZ, parse_start_time

logger = logging.getLogger(__name__)

BASE_URL = "https://www.everymancinema.com"
_API_BASE = f"{BASE_URL}/api/gatsby-source-boxofficeapi"
_SCHEDULE_URL = f"{_API_BASE}/schedule"
_MOVIES_URL = f"{_API_BASE}/movies"

SCHEDULE_DAYS = 30

# Strips surrounding straight or curly quotation marks from titles
_OUTER_QUOTES_RE = re.compile(r'^["“‘](.+)["”’]$')

# Session tag suffix → format tag label.
# Tags follow "Category.Subcategory.Value" convention; we match on the suffix.
_SESSION_TAG_MAP: dict[str, str] = {
    "Accessibility.AudioDescribed": "AD",
    "Accessibility.BSLInterpreted": "BSL",
    "Accessibility.Subtitled": "Subtitled",
    "Accessibility.Relaxed": "Relaxed",
    "Projection.Film": "35mm",
    "Projection.IMAX": "IMAX",
}

# Venue id → Boxoffice theater id
THEATER_IDS: dict[str, str] = {
    "everyman-baker-street": "X0712",
    "everyman-barnet": "X06SI",
    "everyman-belsize-park": "X077P",
    "everyman-borough-yards": "G011I",
    "everyman-broadgate": "X11NT",
    "everyman-canary-wharf": "X0VPB",
    "everyman-chelsea": "X078X",
    "everyman-crystal-palace": "X11DR",
    "everyman-hampstead": "X06ZW",
    "everyman-kings-cross": "X0X5P",
    "everyman-maida-vale": "X0LWI",
    "everyman-muswell-hill": "X06SN",
    "screen-on-the-green": "X077O",
    "everyman-stratford": "G029X",
}


def _venue(venue_id: str, name: str, area: str, postcode: str, address: str, *features: str) -> VenueInfo:
    return VenueInfo(
        id=venue_id,
        name=name,
        chain="everyman",
        website=BASE_URL,
        address=address,
        area=area,
        postcode=postcode,
        features=list(features),
    )


EVERYMAN_VENUES: list[VenueInfo] = [
    _venue("everyman-baker-street", "Everyman Baker Street", "Marylebone", "W1U 6AG", "96-98 Baker Street", "bar", "food"),
    _venue("everyman-barnet", "Everyman Barnet", "Barnet", "EN5 5SJ", "Great North Road", "bar"),
    _venue("everyman-belsize-park", "Everyman Belsize Park", "Belsize Park", "NW3 4QG", "203 Haverstock Hill", "historic", "bar"),
    _venue("everyman-borough-yards", "Everyman Borough Yards", "Borough", "SE1 9PH", "Borough Yards", "bar", "food"),
    _venue("everyman-broadgate", "Everyman Broadgate", "Liverpool Street", "EC2M 2QS", "Broadgate Circle", "bar"),
    _venue("everyman-canary-wharf", "Everyman Canary Wharf", "Canary Wharf", "E14 5NY", "Crossrail Place", "bar", "food"),
    _venue("everyman-chelsea", "Everyman Chelsea", "Chelsea", "SW3 3TD", "279 King's Road", "bar"),
    _venue("everyman-crystal-palace", "Everyman Crystal Palace", "Crystal Palace", "SE19 2AE", "25 Church Road", "bar"),
    _venue("everyman-hampstead", "Everyman Hampstead", "Hampstead", "NW3 1QE", "5 Holly Bush Vale", "historic", "bar"),
    _venue("everyman-kings-cross", "Everyman King's Cross", "King's Cross", "N1C 4AG", "Coal Drops Yard", "bar", "food"),
    _venue("everyman-maida-vale", "Everyman Maida Vale", "Maida Vale", "W9 1TT", "215 Sutherland Avenue", "bar"),
    _venue("everyman-muswell-hill", "Everyman Muswell Hill", "Muswell Hill", "N10 3TD", "Fortis Green Road", "bar"),
    _venue("screen-on-the-green", "Screen on the Green", "Islington", "N1 0PH", "83 Upper Street", "historic", "single_screen", "bar"),
    _venue("everyman-stratford", "Everyman Stratford International", "Stratford", "E20 1GL", "International Way", "bar"),
]


def _format_tags(tags: list[str]) -> str | None:
    labels = []
    for tag in tags:
        for suffix, label in _SESSION_TAG_MAP.items():
            if tag.endswith(suffix):
                labels.append(label)
                break
    return ", ".join(labels) if labels else None


def _booking_url(session: dict) -> str | None:
    for entry in (session.get("data") or {}).get("ticketing", []):
        if entry.get("provider") == "default":
            urls = entry.get("urls", [])
            if urls:
                return urls[0]
    return None


def _clean_title(raw_title: str) -> str:
    title = raw_title.strip()
    m = _OUTER_QUOTES_RE.match(title)
    if m:
        title = m.group(1).strip()
    return title


class EverymanChainScraper(ChainScraper):
    """Scraper for every London Everyman venue."""

    chain_id = "everyman"
    base_url = BASE_URL
    delay_between_requests = 3.0

    def __init__(self) -> None:
        super().__init__()
        self.venues = {venue.id: venue for venue in EVERYMAN_VENUES}

    async def scrape_venues(self, venue_ids: list[str]) -> dict[str, list[RawScreening]]:
        """
        Fetch every requested venue with one schedule call.

        Unknown venue ids are logged and left out of the result.
        """
        theaters: dict[str, str] = {}
        for venue_id in venue_ids:
            theater_id = THEATER_IDS.get(venue_id)
            if theater_id is None:
                logger.warning(f"Everyman: Unknown venue {venue_id}")
                continue
            theaters[theater_id] = venue_id

        if not theaters:
            return {}

        try:
            schedules = await self._fetch_schedule(list(theaters))
            movie_ids = sorted({mid for schedule in schedules.values() for mid in schedule})
            titles = await self._fetch_titles(movie_ids)
        finally:
            await self.cleanup()

        results: dict[str, list[RawScreening]] = {}
        for theater_id, venue_id in theaters.items():
            raw = self._build_screenings(venue_id, schedules.get(theater_id, {}), titles)
            results[venue_id] = self.validate(venue_id, raw)
            logger.info(f"Everyman: {venue_id} has {len(results[venue_id])} valid screenings")

        return results

    async def _fetch_schedule(self, theater_ids: list[str]) -> dict[str, dict]:
        now = datetime.now(LONDON_TZ)
        params: list[tuple[str, str]] = [
            ("theaters", json.dumps({"id": tid, "timeZone": "Europe/London"}, separators=(",", ":")))
            for tid in theater_ids
        ]
        params.append(("from", now.strftime("%Y-%m-%dT%H:%M:%S")))
        params.append(("to", (now + timedelta(days=SCHEDULE_DAYS)).strftime("%Y-%m-%dT23:59:59")))

        response = await self.request("GET", _SCHEDULE_URL, params=params)
        data = response.json()

        return {tid: (data.get(tid) or {}).get("schedule") or {} for tid in theater_ids}

    async def _fetch_titles(self, movie_ids: list[str]) -> dict[str, str]:
        titles: dict[str, str] = {}
        for movie_id in movie_ids:
            try:
                response = await self.request("GET", _MOVIES_URL, params={"ids": movie_id})
                movies = response.json()
            except Exception as e:
                logger.warning(f"Everyman: Error fetching movie {movie_id}: {e}")
                continue
            if movies:
                titles[movie_id] = _clean_title(movies[0].get("title") or "")
        return titles

    def _build_screenings(
        self,
        venue_id: str,
        schedule: dict[str, dict[str, list[dict]]],
        titles: dict[str, str],
    ) -> list[RawScreening]:
        screenings: list[RawScreening] = []
        for movie_id, dates in schedule.items():
            title = titles.get(movie_id)
            if not title:
                continue
            for sessions in dates.values():
                for session in sessions:
                    screening = self._parse_session(venue_id, title, session)
                    if screening:
                        screenings.append(screening)
        return screenings

    def _parse_session(self, venue_id: str, title: str, session: dict) -> RawScreening | None:
        if session.get("isExpired"):
            return None

        start_time = parse_start_time(session.get("startsAt"))
        if start_time is None:
            return None

        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=_booking_url(session),
            format=_format_tags(session.get("tags", [])),
            source_id=f"everyman-{venue_id}-{session.get('id')}",
        )
