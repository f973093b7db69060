"""Pagination driver for multi-page shop and category listings.

Walks consecutive result pages by rewriting the page-number query parameter
of the seed URL, accumulating records until a page comes back empty, a page
fails, or the safety ceiling on pages is reached.
"""

import asyncio
import logging
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from ..config import PaginationConfig
from ..errors import NoListingsFoundError
from ..models import HarvestRun, ListingRecord, TerminationReason
from .base import BrowserSession

logger = logging.getLogger(__name__)


class PageHarvesterProtocol(Protocol):
    """Anything that can harvest a single page."""

    async def harvest(self, session: BrowserSession, url: str) -> list[ListingRecord]:
        ...


def get_page_number(url: str, page_param: str = "page") -> int:
    """Read the page number from url, defaulting to 1."""
    for key, value in parse_qsl(urlparse(url).query, keep_blank_values=True):
        if key == page_param:
            try:
                return max(int(value), 1)
            except ValueError:
                return 1
    return 1


def set_page_number(url: str, page: int, page_param: str = "page") -> str:
    """Return url with the page parameter set to page, preserving other params."""
    parsed = urlparse(url)
    query = [(key, value) for key, value in parse_qsl(parsed.query, keep_blank_values=True) if key != page_param]
    query.append((page_param, str(page)))
    return urlunparse(parsed._replace(query=urlencode(query)))


def missing_params(url: str, expected: list[str]) -> list[str]:
    """Expected query parameters absent from url."""
    present = {key for key, _ in parse_qsl(urlparse(url).query, keep_blank_values=True)}
    return [param for param in expected if param not in present]


class PaginationDriver:
    """Harvests a seed URL and the pages that follow it."""

    def __init__(self, harvester: PageHarvesterProtocol, settings: PaginationConfig):
        """Initialize pagination driver.

        Args:
            harvester: Single-page harvester.
            settings: Page parameter, ceiling and politeness delay.
        """
        self.harvester = harvester
        self.settings = settings

    async def run(self, session: BrowserSession, seed_url: str) -> HarvestRun:
        """Harvest consecutive pages starting from seed_url.

        Never raises for page-level failures: an error stops the walk with
        TerminationReason.ERROR and keeps whatever earlier pages produced.
        A page with no listing tiles after at least one harvested page is the
        normal end of the walk and counts as TerminationReason.EMPTY_PAGE.

        Args:
            session: Shared browser session.
            seed_url: Shop or category URL, with or without a page parameter.

        Returns:
            HarvestRun with the accumulated records and termination reason.
        """
        page_param = self.settings.page_param
        page_number = get_page_number(seed_url, page_param)

        absent = missing_params(seed_url, self.settings.expected_params)
        if absent:
            logger.warning(
                f"Seed URL lacks expected parameters {absent}; pagination may not follow "
                f"the storefront's own page order: {seed_url}"
            )

        run = HarvestRun(source_url=seed_url, terminated_reason=TerminationReason.PAGE_LIMIT)

        while run.pages_visited < self.settings.max_pages:
            page_url = set_page_number(seed_url, page_number, page_param)
            logger.info(f"Harvesting page {page_number}: {page_url}")

            try:
                records = await self.harvester.harvest(session, page_url)
            except NoListingsFoundError as e:
                # Past the last page the grid renders without any listing tiles
                if run.pages_visited == 0:
                    logger.error(f"No listings on the first page of {seed_url}: {e}")
                    run.terminated_reason = TerminationReason.ERROR
                    run.error = str(e)
                    break
                logger.info(f"Page {page_number} has no listings, pagination complete")
                run.pages_visited += 1
                run.terminated_reason = TerminationReason.EMPTY_PAGE
                break
            except Exception as e:
                logger.error(f"Page {page_number} failed, stopping pagination for {seed_url}: {e}")
                run.terminated_reason = TerminationReason.ERROR
                run.error = str(e)
                break

            run.pages_visited += 1

            if not records:
                logger.info(f"Page {page_number} is empty, pagination complete")
                run.terminated_reason = TerminationReason.EMPTY_PAGE
                break

            run.records.extend(records)
            logger.info(f"Page {page_number}: {len(records)} listings ({len(run.records)} total)")
            page_number += 1

            if run.pages_visited < self.settings.max_pages:
                await asyncio.sleep(self.settings.politeness_delay)
        else:
            logger.warning(f"Reached page limit of {self.settings.max_pages} for {seed_url}")

        return run

    async def single_page(self, session: BrowserSession, url: str) -> HarvestRun:
        """Harvest exactly url, without touching its page parameter.

        Errors propagate to the caller.
        """
        records = await self.harvester.harvest(session, url)
        return HarvestRun(
            source_url=url,
            pages_visited=1,
            records=records,
            terminated_reason=TerminationReason.SINGLE_PAGE_MODE,
        )
