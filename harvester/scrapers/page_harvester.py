"""Single-page harvesting with lazy-load stabilization.

Storefront grids load their content through infinite scroll with no reliable
"done" signal. The harvester navigates to a page, discovers which listing
container selector the page uses, keeps scrolling until the listing count
stops growing for a number of consecutive observations, and then extracts
every listing node in document order.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..config import HarvestConfig, SelectorConfig
from ..errors import NoListingsFoundError
from ..models import ListingRecord
from .base import BrowserPage, BrowserSession
from .fields import FieldExtractor

logger = logging.getLogger(__name__)


@dataclass
class StabilizationResult:
    """Outcome of the scroll-stabilization loop."""

    final_count: int
    iterations: int
    stabilized: bool


async def detect_listing_selector(page: BrowserPage, candidates: list[str]) -> str | None:
    """Return the first candidate selector with at least one match."""
    for selector in candidates:
        count = await page.query_count(selector)
        if count > 0:
            logger.debug("Listing container %s matched %d elements", selector, count)
            return selector
    return None


async def stabilize_listing_count(
    page: BrowserPage,
    selector: str,
    settings: HarvestConfig,
    load_more: list[str] | None = None,
) -> StabilizationResult:
    """Scroll until the number of listings stops changing.

    Each iteration clicks any visible "load more" control, periodically
    scrolls to the mid-point first, scrolls to the bottom, waits the settle
    interval and re-counts. The stable counter grows on an unchanged count and
    resets on any change. The loop ends at `stable_threshold` consecutive
    unchanged observations or after `max_scroll_iterations`.
    """
    previous = await page.query_count(selector)
    stable = 0
    iterations = 0

    while stable < settings.stable_threshold and iterations < settings.max_scroll_iterations:
        iterations += 1

        if load_more:
            await page.click_load_more(load_more)

        if settings.mid_scroll_every and iterations % settings.mid_scroll_every == 0:
            await page.scroll_to("middle")

        await page.scroll_to("bottom")
        await asyncio.sleep(settings.settle_interval)

        count = await page.query_count(selector)
        if count == previous:
            stable += 1
        else:
            logger.debug("Listing count %d -> %d after %d scrolls", previous, count, iterations)
            stable = 0
        previous = count

    stabilized = stable >= settings.stable_threshold
    if not stabilized:
        logger.warning(
            f"Listing count still changing after {iterations} scrolls, extracting {previous} listings"
        )
    return StabilizationResult(final_count=previous, iterations=iterations, stabilized=stabilized)


class PageHarvester:
    """Harvests all listings from one storefront page."""

    def __init__(self, settings: HarvestConfig, selectors: SelectorConfig):
        """Initialize page harvester.

        Args:
            settings: Navigation and stabilization settings.
            selectors: Selector catalogue for containers, load-more controls
                and listing fields.
        """
        self.settings = settings
        self.selectors = selectors
        self.extractor = FieldExtractor(selectors)

    async def harvest(self, session: BrowserSession, url: str) -> list[ListingRecord]:
        """Load url and extract every listing on it.

        Args:
            session: Shared browser session.
            url: Shop or category page URL.

        Returns:
            One ListingRecord per listing node, in document order.

        Raises:
            NavigationError: If the page did not load within the timeout.
            NoListingsFoundError: If no container selector matched.
        """
        page = await session.new_page()
        try:
            logger.info(f"Loading page: {url}")
            await page.navigate(
                url,
                timeout_ms=self.settings.navigation_timeout_ms,
                wait_until=self.settings.wait_until,
            )

            selector = await detect_listing_selector(page, self.selectors.containers)
            if selector is None:
                await page.scroll_to("bottom")
                await asyncio.sleep(self.settings.settle_interval)
                selector = await detect_listing_selector(page, self.selectors.containers)
            if selector is None:
                raise NoListingsFoundError(url, self.selectors.containers)

            result = await stabilize_listing_count(
                page, selector, self.settings, self.selectors.load_more
            )
            logger.info(
                f"Page stabilized with {result.final_count} listings after {result.iterations} scrolls"
            )

            fragments = await page.listing_html(selector)
        finally:
            await page.close()

        records = [
            self.extractor.extract_html(html, index, base_url=url)
            for index, html in enumerate(fragments, start=1)
        ]
        logger.info(f"Extracted {len(records)} listings from {url}")
        return records
