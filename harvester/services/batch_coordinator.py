"""Batch coordination for harvesting many storefront URLs.

Runs the pagination driver (or a single-page harvest) across a list of input
URLs with one shared browser session, isolating per-URL failures so that one
bad URL never aborts the batch, then concatenates the records and tabulates
summary statistics.
"""

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime

from ..errors import SessionInitError
from ..models import BatchResult, BatchStats, HarvestRun, TerminationReason
from ..scrapers.base import BrowserSession
from ..scrapers.pagination import PaginationDriver
from ..scrapers.product_page import SearchResultsHarvester

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], BrowserSession]


class BatchCoordinator:
    """Coordinates harvesting across a list of URLs.

    Responsibilities:
    - Own the browser session for the whole batch
    - Process URLs strictly sequentially
    - Downgrade per-URL failures to error entries
    - Aggregate records and statistics in input order
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        paginator: PaginationDriver,
        search_harvester: SearchResultsHarvester | None = None,
    ):
        """Initialize batch coordinator.

        Args:
            session_factory: Callable returning a new, unstarted browser session.
            paginator: Pagination driver wrapping the page harvester.
            search_harvester: Product-detail harvester for search URLs.
        """
        self.session_factory = session_factory
        self.paginator = paginator
        self.search_harvester = search_harvester

    async def _open_session(self) -> BrowserSession:
        session = self.session_factory()
        try:
            await session.start()
        except SessionInitError:
            raise
        except Exception as e:
            raise SessionInitError(f"Could not start browser session: {e}") from e
        return session

    async def harvest_url(
        self,
        session: BrowserSession,
        url: str,
        auto_paginate: bool,
        product_details: bool = False,
        max_products: int | None = None,
    ) -> HarvestRun:
        """Harvest one URL in the requested mode.

        Raises:
            Exception: Whatever the single-page or search-page harvest raised;
                paginated runs report failures through their termination
                reason instead.
        """
        if product_details:
            if self.search_harvester is None:
                raise RuntimeError("Product-detail harvesting is not configured")
            return await self.search_harvester.run(session, url, max_products)
        if auto_paginate:
            return await self.paginator.run(session, url)
        return await self.paginator.single_page(session, url)

    async def run_batch(
        self,
        urls: list[str],
        auto_paginate: bool = True,
        product_details: bool = False,
        max_products: int | None = None,
    ) -> BatchResult:
        """Harvest every URL and aggregate the results.

        Args:
            urls: Shop or category URLs, processed in order.
            auto_paginate: Walk all result pages of each URL when True,
                harvest only the exact URL when False.
            product_details: Treat each URL as a search page and visit every
                product it links to instead of reading the grid.
            max_products: Product cap per search URL in product-detail mode.

        Returns:
            BatchResult with records in input-URL order.

        Raises:
            SessionInitError: If the browser session cannot be started.
        """
        start_time = datetime.now()
        result = BatchResult()

        session = await self._open_session()
        try:
            for url in urls:
                logger.info(
                    f"Processing URL: {url} (auto_paginate={auto_paginate}, "
                    f"product_details={product_details})"
                )
                try:
                    run = await self.harvest_url(
                        session, url, auto_paginate, product_details, max_products
                    )
                except Exception as e:
                    logger.error(f"Failed to harvest {url}: {e}")
                    result.per_url_errors[url] = str(e)
                    result.runs.append(
                        HarvestRun(
                            source_url=url,
                            terminated_reason=TerminationReason.ERROR,
                            error=str(e),
                        )
                    )
                    continue

                if run.failed_entirely:
                    result.per_url_errors[url] = run.error or "Harvest failed"

                result.runs.append(run)
                result.all_records.extend(run.records)
                logger.info(
                    f"Extracted {len(run.records)} listings from {url} "
                    f"({run.pages_visited} pages, {run.terminated_reason.value})"
                )
        finally:
            await session.stop()

        result.stats = self._tabulate(result)
        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Batch complete: {result.stats.total_records} listings from {len(urls)} URLs, "
            f"{result.stats.failed_urls} failed, {elapsed:.1f}s"
        )
        return result

    @staticmethod
    def _tabulate(result: BatchResult) -> BatchStats:
        terminations = Counter(run.terminated_reason.value for run in result.runs)
        sold_out = sum(1 for record in result.all_records if not record.in_stock)
        return BatchStats(
            total_urls=len(result.runs),
            total_records=len(result.all_records),
            pages_visited=sum(run.pages_visited for run in result.runs),
            failed_urls=len(result.per_url_errors),
            available=len(result.all_records) - sold_out,
            sold_out=sold_out,
            terminations=dict(terminations),
        )
