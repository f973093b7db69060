"""Headless browser session for storefront page harvesting.

This module provides the Playwright-backed implementation of the browser
collaborator used by the page harvester. One session is launched per batch
and shared serially; every harvested page gets its own tab which the caller
closes on both success and failure paths.

Key features:
- Chromium launch with a desktop user agent and viewport
- Optional blocking of media, fonts and trackers to speed up loading
- Navigation errors and timeouts surfaced as NavigationError
- Automatic Playwright browser installation on first launch failure
"""

import asyncio
import logging
import shlex
from typing import TYPE_CHECKING, Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..config import BrowserConfig
from ..errors import NavigationError, SessionInitError

if TYPE_CHECKING:
    from playwright.async_api import Route
else:
    Route = Any

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = ("media", "font")
BLOCKED_DOMAINS = (
    "google-analytics",
    "googletagmanager",
    "facebook",
    "doubleclick",
    "adsystem",
    "pinterest",
)

SCROLL_SCRIPT = """
(position) => {
    const height = document.body.scrollHeight;
    let top = position;
    if (position === 'bottom') top = height;
    else if (position === 'middle') top = height / 2;
    else if (position === 'top') top = 0;
    window.scrollTo(0, top);
    return window.scrollY;
}
"""

OUTER_HTML_SCRIPT = "elements => elements.map(element => element.outerHTML)"


class PlaywrightPage:
    """BrowserPage implementation over a Playwright Page."""

    def __init__(self, page: Page):
        self.page = page

    async def navigate(self, url: str, timeout_ms: int, wait_until: str) -> None:
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(url, (str(e).splitlines() or [repr(e)])[0]) from e

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def query_count(self, selector: str) -> int:
        try:
            return await self.page.locator(selector).count()
        except PlaywrightError as e:
            logger.debug("Selector %s could not be counted: %s", selector, e)
            return 0

    async def scroll_to(self, position: str | int) -> None:
        await self.page.evaluate(SCROLL_SCRIPT, position)

    async def click_load_more(self, selectors: list[str]) -> bool:
        for selector in selectors:
            try:
                control = self.page.locator(selector).first
                if await control.is_visible():
                    await control.click(timeout=2000)
                    logger.debug("Clicked load-more control %s", selector)
                    return True
            except PlaywrightError as e:
                logger.debug("Load-more control %s not clickable: %s", selector, e)
        return False

    async def listing_html(self, selector: str) -> list[str]:
        return await self.page.locator(selector).evaluate_all(OUTER_HTML_SCRIPT)

    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError as e:
            logger.debug("Selector %s did not appear: %s", selector, e)
            return False
        return True

    async def content(self) -> str:
        return await self.page.content()

    async def current_url(self) -> str:
        return self.page.url

    async def close(self) -> None:
        try:
            await self.page.close()
        except PlaywrightError as e:
            logger.warning(f"Error closing page: {e}")


class HeadlessBrowser:
    """Headless Chromium session shared by all pages of one batch."""

    def __init__(self, settings: BrowserConfig | None = None) -> None:
        self.settings = settings or BrowserConfig()
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.playwright: Playwright | None = None
        self._install_attempted: bool = False

    async def __aenter__(self) -> "HeadlessBrowser":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    async def start(self) -> None:
        """Start the headless browser.

        Raises:
            SessionInitError: If Chromium could not be launched.
        """
        try:
            self.playwright = await async_playwright().start()

            self.browser = await self.playwright.chromium.launch(
                headless=self.settings.headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-accelerated-2d-canvas",
                    "--disable-gpu",
                    "--no-first-run",
                    "--no-default-browser-check",
                ],
            )

            self.context = await self.browser.new_context(
                user_agent=self.settings.user_agent,
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
                java_script_enabled=True,
                locale=self.settings.locale,
            )

            if self.settings.block_resources:
                await self.context.route("**/*", self._route_handler)

            logger.info("Headless browser started successfully")

        except Exception as e:
            logger.error(f"Failed to start headless browser: {e}")

            if not self._install_attempted and _needs_browser_install(str(e)):
                logger.warning("Playwright browsers missing; attempting automatic installation...")
                self._install_attempted = True
                if await _ensure_playwright_browsers_installed():
                    logger.info("Playwright browsers installed successfully, retrying launch.")
                    await self.stop()
                    await self.start()
                    return

            await self.stop()
            raise SessionInitError(f"Could not launch browser: {e}") from e

    async def stop(self) -> None:
        """Stop the headless browser and cleanup resources."""
        try:
            if self.context:
                await self.context.close()
                self.context = None

            if self.browser:
                await self.browser.close()
                self.browser = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None

            logger.debug("Headless browser stopped and cleaned up")

        except Exception as e:
            logger.warning(f"Error during browser cleanup: {e}")

    async def _route_handler(self, route: Route) -> None:
        """Abort heavy media and tracker requests, let everything else through."""
        request = route.request
        if request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        elif any(domain in request.url for domain in BLOCKED_DOMAINS):
            await route.abort()
        else:
            await route.continue_()

    async def new_page(self) -> PlaywrightPage:
        """Open a new tab in the shared context."""
        if self.context is None:
            raise RuntimeError("Browser not started. Call start() first.")

        page = await self.context.new_page()
        return PlaywrightPage(page)


def _needs_browser_install(message: str) -> bool:
    lowered = message.lower()
    return "executable doesn't exist" in lowered or "playwright install" in lowered


async def _ensure_playwright_browsers_installed() -> bool:
    """Attempt to install Playwright Chromium binaries on demand."""
    try:
        cmd = ["playwright", "install", "chromium"]
        logger.info("Running %s", " ".join(shlex.quote(part) for part in cmd))
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        stdout, _ = await process.communicate()
        if stdout:
            logger.info(stdout.decode(errors="ignore"))
        if process.returncode == 0:
            return True

        logger.error("playwright install chromium exited with %s", process.returncode)
        return False
    except Exception as exc:
        logger.error(f"Automatic Playwright installation failed: {exc}")
        return False
