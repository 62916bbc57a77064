"""Shared headless browser session with fingerprint hardening.

The orchestrator owns one ``BrowserSession`` per run. It launches Chromium
lazily on first use, hands out pages pinned to a London locale, timezone
and geolocation, and is closed explicitly once an adapter finishes.
Adapters only ever ask for rendered HTML or a page, so parsing code never
imports playwright.
"""

import asyncio
import logging
import random
from contextlib import AsyncExitStack
from types import TracebackType

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright_stealth import Stealth

from showreel.config import settings

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-infobars",
    "--window-position=0,0",
]

LONDON_GEOLOCATION = {"latitude": 51.5074, "longitude": -0.1278}

_VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1680, "height": 1050},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
]

# Markers of an interstitial challenge page. "challenge-platform" alone is
# not used: real pages load that script path too.
CHALLENGE_MARKERS = (
    "<title>Just a moment",
    "Checking your browser",
    "cf-challenge-running",
    "cf_chl_opt",
    "cf-spinner",
)

FINGERPRINT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', {
  get: () => [
    { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
    { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
    { name: 'Native Client', filename: 'internal-nacl-plugin' },
  ],
});
Object.defineProperty(navigator, 'languages', { get: () => ['en-GB', 'en-US', 'en'] });
Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 8 });
Object.defineProperty(navigator, 'deviceMemory', { get: () => 8 });
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters)
);
window.chrome = { runtime: {}, loadTimes: function() {}, csi: function() {}, app: {} };
"""


def is_challenge_page(html: str) -> bool:
    return any(marker in html for marker in CHALLENGE_MARKERS)


async def wait_for_challenge(page: Page, max_wait: float = 60.0) -> bool:
    """
    Wait for an anti-bot challenge to clear, moving the pointer like a person.

    Best effort: returns False once ``max_wait`` seconds have been spent
    and the caller carries on with whatever the page holds.

    Returns:
        True if the page is free of challenge markers
    """
    waited = 0.0
    while True:
        html = await page.content()
        if not is_challenge_page(html):
            return True
        if waited >= max_wait:
            logger.warning(f"Challenge still present after {max_wait:.0f}s, proceeding anyway")
            return False

        x = random.randint(100, 800)
        y = random.randint(100, 600)
        try:
            await page.mouse.move(x, y, steps=random.randint(5, 15))
            if random.random() < 0.1:
                await page.mouse.click(x, y)
        except Exception as e:
            logger.debug(f"Pointer jitter failed: {e}")

        delay = random.uniform(1.0, 2.0)
        await asyncio.sleep(delay)
        waited += delay


class BrowserSession:
    """Lazily launched, explicitly closed Chromium instance."""

    def __init__(self, headless: bool | None = None) -> None:
        self.headless = settings.browser_headless if headless is None else headless
        self._stack: AsyncExitStack | None = None
        self._browser: Browser | None = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        if self._browser is None:
            logger.info("Launching headless browser")
            self._stack = AsyncExitStack()
            playwright = await self._stack.enter_async_context(
                Stealth().use_async(async_playwright())
            )
            self._browser = await playwright.chromium.launch(
                headless=self.headless, args=LAUNCH_ARGS
            )
        return self._browser

    async def new_page(self) -> Page:
        """Open a page in a fresh context with the London fingerprint."""
        browser = await self._ensure_browser()
        context = await browser.new_context(
            viewport=random.choice(_VIEWPORTS),
            user_agent=USER_AGENT,
            locale="en-GB",
            timezone_id="Europe/London",
            geolocation=LONDON_GEOLOCATION,
            permissions=["geolocation"],
        )
        await context.add_init_script(FINGERPRINT_SCRIPT)
        return await context.new_page()

    async def render(
        self,
        url: str,
        wait_for: str | None = None,
        timeout: float | None = None,
        settle: float = 2.0,
    ) -> str:
        """
        Navigate to ``url`` and return the HTML once it has materialised.

        Args:
            url: Page to load
            wait_for: Optional CSS selector to wait for after any challenge
            timeout: Navigation timeout in seconds (defaults to scrape_timeout)
            settle: Extra seconds to let client-side rendering finish
        """
        timeout_ms = (timeout or settings.scrape_timeout) * 1000
        page = await self.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            await wait_for_challenge(page)
            if wait_for:
                try:
                    await page.wait_for_selector(wait_for, timeout=timeout_ms)
                except PlaywrightTimeoutError:
                    logger.debug(f"Selector {wait_for!r} never appeared on {url}")
            await asyncio.sleep(settle)
            return await page.content()
        finally:
            await page.context.close()

    async def close(self) -> None:
        if self._stack is not None:
            try:
                if self._browser is not None:
                    await self._browser.close()
            finally:
                await self._stack.aclose()
                logger.info("Headless browser closed")
        self._stack = None
        self._browser = None

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
