"""Unit tests for challenge detection; no real browser is launched."""

from unittest.mock import AsyncMock, MagicMock, patch

from showreel.scrapers.browser import is_challenge_page, wait_for_challenge

CHALLENGE_HTML = "<html><head><title>Just a moment...</title></head></html>"
REAL_HTML = "<html><head><title>What's On</title></head><body>Listings</body></html>"


def make_page(*contents: str) -> MagicMock:
    page = MagicMock()
    page.content = AsyncMock(side_effect=list(contents))
    page.mouse.move = AsyncMock()
    page.mouse.click = AsyncMock()
    return page


class TestIsChallengePage:
    def test_detects_interstitial_title(self) -> None:
        assert is_challenge_page(CHALLENGE_HTML)

    def test_detects_challenge_script_option(self) -> None:
        assert is_challenge_page("<script>window._cf_chl_opt = {};</script>")

    def test_real_page(self) -> None:
        assert not is_challenge_page(REAL_HTML)


class TestWaitForChallenge:
    async def test_clear_page_returns_immediately(self) -> None:
        page = make_page(REAL_HTML)
        assert await wait_for_challenge(page, max_wait=5) is True
        page.mouse.move.assert_not_awaited()

    async def test_zero_budget_gives_up_at_once(self) -> None:
        page = make_page(CHALLENGE_HTML)
        assert await wait_for_challenge(page, max_wait=0) is False

    async def test_waits_until_challenge_clears(self) -> None:
        page = make_page(CHALLENGE_HTML, CHALLENGE_HTML, REAL_HTML)
        with patch("showreel.scrapers.browser.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await wait_for_challenge(page, max_wait=60) is True
        assert sleep.await_count == 2
        assert page.mouse.move.await_count == 2

    async def test_gives_up_after_budget(self) -> None:
        page = make_page(*[CHALLENGE_HTML] * 10)
        with patch("showreel.scrapers.browser.asyncio.sleep", new=AsyncMock()):
            assert await wait_for_challenge(page, max_wait=3) is False
