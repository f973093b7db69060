"""Product-detail harvesting.

Search-result grids only show a summary of each product. For the full picture
(seller, brand, stock, review count) every product page has to be opened and
read on its own. `ProductPageHarvester` extracts one product-detail page;
`SearchResultsHarvester` collects the product links of a search page and
visits each of them in turn with a randomized pause in between.
"""

import asyncio
import logging
import random

from ..config import DetailConfig, HarvestConfig, SelectorConfig
from ..models import HarvestRun, ListingRecord, TerminationReason
from .base import BrowserSession
from .fields import FieldExtractor, extract_item_id
from .page_harvester import PageHarvester

logger = logging.getLogger(__name__)


class ProductPageHarvester:
    """Extracts a single product-detail page into a ListingRecord."""

    def __init__(self, settings: HarvestConfig, details: DetailConfig, selectors: SelectorConfig):
        """Initialize product page harvester.

        Args:
            settings: Navigation timeout and load state.
            details: Readiness wait for the product header.
            selectors: Selector catalogue holding the product-detail chains.
        """
        self.settings = settings
        self.details = details
        self.selectors = selectors
        self.extractor = FieldExtractor(selectors, fields=selectors.product_fields)

    async def harvest(self, session: BrowserSession, url: str, index: int = 1) -> ListingRecord:
        """Load url and extract the product shown on it.

        Args:
            session: Shared browser session.
            url: Product-detail page URL.
            index: Position of the product in its search results, used for
                the placeholder name.

        Returns:
            ListingRecord whose listing_url and item_id come from the URL the
            page finally landed on.

        Raises:
            NavigationError: If the page did not load within the timeout.
        """
        page = await session.new_page()
        try:
            logger.info(f"Loading product page: {url}")
            await page.navigate(
                url,
                timeout_ms=self.settings.navigation_timeout_ms,
                wait_until=self.settings.wait_until,
            )

            for selector in self.selectors.product_ready:
                if await page.wait_for(selector, self.details.ready_timeout_ms):
                    break
            else:
                logger.debug(f"Product header never rendered on {url}, extracting anyway")

            html = await page.content()
            final_url = await page.current_url() or url
        finally:
            await page.close()

        record = self.extractor.extract_html(html, index, base_url=final_url)
        return record.model_copy(
            update={"listing_url": final_url, "item_id": extract_item_id(final_url)}
        )


class SearchResultsHarvester:
    """Expands a search page into full product-detail records."""

    def __init__(
        self,
        listing_harvester: PageHarvester,
        product_harvester: ProductPageHarvester,
        details: DetailConfig,
    ):
        """Initialize search results harvester.

        Args:
            listing_harvester: Grid harvester used to collect product links.
            product_harvester: Harvester for each linked product page.
            details: Product cap and pause bounds.
        """
        self.listing_harvester = listing_harvester
        self.product_harvester = product_harvester
        self.details = details

    async def collect_product_urls(self, session: BrowserSession, search_url: str) -> list[str]:
        """Product links on search_url in grid order, without duplicates."""
        listings = await self.listing_harvester.harvest(session, search_url)
        return list(dict.fromkeys(record.listing_url for record in listings if record.listing_url))

    async def run(
        self, session: BrowserSession, search_url: str, max_products: int | None = None
    ) -> HarvestRun:
        """Visit every product linked from search_url, up to the product cap.

        A product page that fails is logged and recorded in
        `failed_products`; the remaining products are still visited. Errors
        loading the search page itself propagate.

        Args:
            session: Shared browser session.
            search_url: Search or category results URL.
            max_products: Overrides the configured product cap.

        Returns:
            HarvestRun with one record per extracted product page.
        """
        limit = max_products if max_products is not None else self.details.max_products

        product_urls = await self.collect_product_urls(session, search_url)
        if len(product_urls) > limit:
            logger.info(f"Found {len(product_urls)} products, visiting the first {limit}")
            product_urls = product_urls[:limit]

        run = HarvestRun(
            source_url=search_url,
            pages_visited=1,
            terminated_reason=TerminationReason.PRODUCT_PAGES,
        )

        for index, url in enumerate(product_urls, start=1):
            if index > 1:
                await asyncio.sleep(random.uniform(self.details.delay_min, self.details.delay_max))
            try:
                record = await self.product_harvester.harvest(session, url, index)
            except Exception as e:
                logger.error(f"Failed to scrape product {url}: {e}")
                run.failed_products[url] = str(e)
                continue
            run.pages_visited += 1
            run.records.append(record)

        if product_urls and not run.records:
            run.terminated_reason = TerminationReason.ERROR
            run.error = f"All {len(product_urls)} product pages failed"

        logger.info(
            f"Extracted {len(run.records)} of {len(product_urls)} products from {search_url}"
        )
        return run
