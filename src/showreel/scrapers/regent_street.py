"""Regent Street Cinema scraper.

The site is a single-page app on the INDY Systems platform. Loading the
programme page in a real browser makes it call ``/graphql`` once per date
batch; we listen to those responses and keep every
``data.showingsForDate.data`` payload. If the page yields nothing (the SPA
changed its loading pattern, or a challenge never cleared) we fall back to
posting the same queries directly.
"""

import asyncio
import json
import logging
from datetime import date, datetime, timezone

from showreel.scrapers.base import BaseScraper
from showreel.scrapers.browser import wait_for_challenge
from showreel.scrapers.models import RawScreening, ScraperConfig
from showreel.services.validation import parse_start_time
from showreel.utils.text import slugify

logger = logging.getLogger(__name__)

BASE_URL = "https://www.regentstreetcinema.com"
PROGRAMME_URL = f"{BASE_URL}/programme/"
GRAPHQL_URL = f"{BASE_URL}/graphql"

FIRST_CAPTURE_TIMEOUT = 20.0
SETTLE_SECONDS = 3.0
DATE_TAB_SELECTOR = "[data-date], .date-picker button, .dates-list button"
MAX_DATE_TABS = 14

REGENT_STREET_CONFIG = ScraperConfig(
    cinema_id="regent-street-cinema",
    base_url=BASE_URL,
    requests_per_minute=10,
    delay_between_requests=1.5,
)

# Site ID and badge filter discovered from browser network traffic
_SITE_IDS = [85]
_ANY_BADGE_IDS = [1314]
_EVERY_BADGE_IDS = [None]

_DATES_QUERY = """
query ($ids: [ID], $movieId: ID, $movieIds: [ID], $titleClassId: ID, $titleClassIds: [ID],
       $siteIds: [ID], $everyShowingBadgeIds: [ID], $anyShowingBadgeIds: [ID]) {
  datesWithShowing(
    ids: $ids movieId: $movieId movieIds: $movieIds
    titleClassId: $titleClassId titleClassIds: $titleClassIds
    siteIds: $siteIds everyShowingBadgeIds: $everyShowingBadgeIds
    anyShowingBadgeIds: $anyShowingBadgeIds
  ) { value }
}
"""

_SHOWINGS_QUERY = """
query ($date: String, $ids: [ID], $movieId: ID, $movieIds: [ID], $titleClassId: ID,
       $titleClassIds: [ID], $siteIds: [ID], $everyShowingBadgeIds: [ID],
       $anyShowingBadgeIds: [ID], $resultVersion: String) {
  showingsForDate(
    date: $date ids: $ids movieId: $movieId movieIds: $movieIds
    titleClassId: $titleClassId titleClassIds: $titleClassIds
    siteIds: $siteIds everyShowingBadgeIds: $everyShowingBadgeIds
    anyShowingBadgeIds: $anyShowingBadgeIds resultVersion: $resultVersion
  ) {
    data {
      id
      time
      published
      past
      movie { name urlSlug }
    }
  }
}
"""

_BASE_VARIABLES: dict = {
    "ids": [],
    "movieId": None,
    "movieIds": [],
    "titleClassId": None,
    "titleClassIds": [],
    "siteIds": _SITE_IDS,
    "anyShowingBadgeIds": _ANY_BADGE_IDS,
    "everyShowingBadgeIds": _EVERY_BADGE_IDS,
}

_GRAPHQL_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/graphql-response+json,application/json;q=0.9",
    "Origin": BASE_URL,
    "Referer": f"{BASE_URL}/choose-day/",
    "circuit-id": "19",
    "site-id": "85",
    "client-type": "consumer",
    "is-electron-mode": "false",
}


def extract_showings(payload: dict) -> list[dict] | None:
    """Return the showings list from a GraphQL reply, or None if absent."""
    data = (payload or {}).get("data") or {}
    showings = (data.get("showingsForDate") or {}).get("data")
    return showings if isinstance(showings, list) else None


class RegentStreetScraper(BaseScraper):
    """Scraper for Regent Street Cinema (Marylebone)."""

    config = REGENT_STREET_CONFIG

    async def fetch_pages(self) -> list[list[dict]]:
        showings = await self._capture_showings()
        if not showings:
            logger.info("Regent Street: No showings intercepted, querying GraphQL directly")
            showings = await self._query_showings()
        return [showings]

    async def _capture_showings(self) -> list[dict]:
        browser = await self.get_browser()
        page = await browser.new_page()
        captured: list[dict] = []
        first_capture = asyncio.Event()

        async def on_response(response) -> None:
            if "/graphql" not in response.url:
                return
            try:
                showings = extract_showings(await response.json())
            except Exception:
                # Not JSON, or the body is gone after navigation
                return
            if showings:
                captured.extend(showings)
                logger.debug(f"Regent Street: Captured {len(showings)} showings ({len(captured)} total)")
                first_capture.set()

        page.on("response", on_response)
        try:
            await page.goto(PROGRAMME_URL, wait_until="domcontentloaded")
            await wait_for_challenge(page)
            await self._click_date_tabs(page)

            try:
                await asyncio.wait_for(first_capture.wait(), timeout=FIRST_CAPTURE_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Regent Street: No showings after {FIRST_CAPTURE_TIMEOUT:.0f}s, "
                    f"proceeding with {len(captured)}"
                )
            else:
                # Later date batches arrive shortly after the first
                await asyncio.sleep(SETTLE_SECONDS)
        finally:
            await page.context.close()

        return captured

    async def _click_date_tabs(self, page) -> None:
        tabs = await page.query_selector_all(DATE_TAB_SELECTOR)
        for tab in tabs[:MAX_DATE_TABS]:
            try:
                await tab.click()
                await asyncio.sleep(0.5)
            except Exception as e:
                logger.debug(f"Regent Street: Date tab click failed: {e}")

    async def _query_showings(self) -> list[dict]:
        payload = {"variables": {**_BASE_VARIABLES}, "query": _DATES_QUERY}
        response = await self.request("POST", GRAPHQL_URL, json=payload, headers=_GRAPHQL_HEADERS)

        raw_value = (response.json().get("data") or {}).get("datesWithShowing", {}).get("value", "[]")
        try:
            date_strings: list[str] = json.loads(raw_value)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Regent Street: Could not parse datesWithShowing value: {raw_value!r}")
            return []

        showings: list[dict] = []
        for ds in date_strings:
            try:
                show_date = date.fromisoformat(ds)
            except ValueError:
                continue
            payload = {
                "variables": {**_BASE_VARIABLES, "date": show_date.isoformat(), "resultVersion": None},
                "query": _SHOWINGS_QUERY,
            }
            response = await self.request("POST", GRAPHQL_URL, json=payload, headers=_GRAPHQL_HEADERS)
            showings.extend(extract_showings(response.json()) or [])

        return showings

    def parse_page(self, showings: list[dict]) -> list[RawScreening]:
        now = datetime.now(timezone.utc)
        seen_ids: set[str] = set()
        screenings: list[RawScreening] = []

        for item in showings:
            showing_id = str(item.get("id") or "")
            if not showing_id or showing_id in seen_ids:
                continue
            seen_ids.add(showing_id)

            if item.get("published") is False or item.get("past"):
                continue

            try:
                screening = self._parse_showing(showing_id, item, now)
            except Exception as e:
                logger.warning(f"Regent Street: Failed to parse showing {showing_id}: {e}")
                continue
            if screening:
                screenings.append(screening)

        return screenings

    def _parse_showing(self, showing_id: str, item: dict, now: datetime) -> RawScreening | None:
        movie = item.get("movie") or {}
        title = (movie.get("name") or "").strip()
        start_time = parse_start_time(item.get("time"))
        if not title or start_time is None or start_time < now:
            return None

        url_slug = movie.get("urlSlug") or slugify(title)
        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=f"{BASE_URL}/movie/{url_slug}",
            source_id=f"regent-street-{showing_id}",
        )
