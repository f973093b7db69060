"""Tests for the Playwright page wrapper with mocked Playwright objects."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from harvester.config import BrowserConfig
from harvester.errors import NavigationError, SessionInitError
from harvester.scrapers.headless import (
    OUTER_HTML_SCRIPT,
    HeadlessBrowser,
    PlaywrightPage,
    _needs_browser_install,
)

URL = "https://www.lazada.com.ph/shop/manila-threads/"


@pytest.fixture
def playwright_page():
    page = MagicMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock()
    page.close = AsyncMock()
    return page


class TestPlaywrightPage:
    """Test BrowserPage behaviour over Playwright."""

    @pytest.mark.asyncio
    async def test_navigate_passes_settings(self, playwright_page):
        await PlaywrightPage(playwright_page).navigate(URL, timeout_ms=1000, wait_until="networkidle")
        playwright_page.goto.assert_awaited_once_with(URL, wait_until="networkidle", timeout=1000)

    @pytest.mark.asyncio
    async def test_navigation_timeout_becomes_navigation_error(self, playwright_page):
        playwright_page.goto.side_effect = PlaywrightError("Timeout 1000ms exceeded.\n=== logs ===")

        with pytest.raises(NavigationError) as exc_info:
            await PlaywrightPage(playwright_page).navigate(URL, timeout_ms=1000, wait_until="load")

        assert exc_info.value.url == URL
        assert exc_info.value.reason == "Timeout 1000ms exceeded."

    @pytest.mark.asyncio
    async def test_query_count(self, playwright_page):
        playwright_page.locator.return_value.count = AsyncMock(return_value=12)
        assert await PlaywrightPage(playwright_page).query_count(".Bm3ON") == 12
        playwright_page.locator.assert_called_with(".Bm3ON")

    @pytest.mark.asyncio
    async def test_query_count_invalid_selector(self, playwright_page):
        playwright_page.locator.return_value.count = AsyncMock(side_effect=PlaywrightError("bad selector"))
        assert await PlaywrightPage(playwright_page).query_count("::bad") == 0

    @pytest.mark.asyncio
    async def test_listing_html(self, playwright_page):
        playwright_page.locator.return_value.evaluate_all = AsyncMock(return_value=["<div>a</div>"])

        assert await PlaywrightPage(playwright_page).listing_html(".Bm3ON") == ["<div>a</div>"]
        playwright_page.locator.return_value.evaluate_all.assert_awaited_once_with(OUTER_HTML_SCRIPT)

    @pytest.mark.asyncio
    async def test_click_load_more_first_visible(self, playwright_page):
        hidden = MagicMock(is_visible=AsyncMock(return_value=False), click=AsyncMock())
        visible = MagicMock(is_visible=AsyncMock(return_value=True), click=AsyncMock())
        playwright_page.locator.side_effect = [MagicMock(first=hidden), MagicMock(first=visible)]

        clicked = await PlaywrightPage(playwright_page).click_load_more([".a", ".b"])

        assert clicked is True
        hidden.click.assert_not_awaited()
        visible.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_for_timeout_returns_false(self, playwright_page):
        playwright_page.wait_for_selector = AsyncMock(side_effect=PlaywrightError("Timeout 100ms exceeded."))
        assert await PlaywrightPage(playwright_page).wait_for(".pdp-mod-product-badge-wrapper", 100) is False

    @pytest.mark.asyncio
    async def test_content_and_current_url(self, playwright_page):
        playwright_page.content = AsyncMock(return_value="<html></html>")
        playwright_page.url = URL

        page = PlaywrightPage(playwright_page)

        assert await page.content() == "<html></html>"
        assert await page.current_url() == URL

    @pytest.mark.asyncio
    async def test_scroll_to(self, playwright_page):
        await PlaywrightPage(playwright_page).scroll_to("middle")
        assert playwright_page.evaluate.await_args.args[1] == "middle"


class TestHeadlessBrowser:
    """Test session lifecycle errors."""

    @pytest.mark.asyncio
    async def test_new_page_before_start(self):
        with pytest.raises(RuntimeError, match="not started"):
            await HeadlessBrowser(BrowserConfig()).new_page()

    @pytest.mark.asyncio
    async def test_launch_failure_raises_session_init_error(self):
        with patch("harvester.scrapers.headless.async_playwright") as mock_playwright:
            mock_playwright.return_value.start = AsyncMock(side_effect=RuntimeError("no display"))

            with pytest.raises(SessionInitError, match="no display"):
                await HeadlessBrowser(BrowserConfig()).start()

    def test_needs_browser_install(self):
        assert _needs_browser_install("Executable doesn't exist at /ms-playwright/chromium")
        assert _needs_browser_install("Please run the following command: playwright install")
        assert not _needs_browser_install("Target closed")
