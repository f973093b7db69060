"""Dependency-injection container.

Wires the configuration sections into the harvesting components so the HTTP
layer (and tests) can resolve fully assembled services and swap the browser
session for a fake.
"""

from dependency_injector import containers, providers

from ..config import config as app_config
from ..scrapers.headless import HeadlessBrowser
from ..scrapers.page_harvester import PageHarvester
from ..scrapers.pagination import PaginationDriver
from ..scrapers.product_page import ProductPageHarvester, SearchResultsHarvester
from ..services.batch_coordinator import BatchCoordinator


class Container(containers.DeclarativeContainer):
    """DI container for the application.

    Holds the wiring for the browser harvesting stack. The browser session is
    a factory so every batch gets its own session.
    """

    config = providers.Object(app_config)

    # Browser
    browser_session = providers.Factory(HeadlessBrowser, settings=config.provided.browser)

    # Harvesting
    page_harvester = providers.Singleton(
        PageHarvester,
        settings=config.provided.harvest,
        selectors=config.provided.selectors,
    )
    pagination_driver = providers.Singleton(
        PaginationDriver,
        harvester=page_harvester,
        settings=config.provided.pagination,
    )
    product_page_harvester = providers.Singleton(
        ProductPageHarvester,
        settings=config.provided.harvest,
        details=config.provided.details,
        selectors=config.provided.selectors,
    )
    search_harvester = providers.Singleton(
        SearchResultsHarvester,
        listing_harvester=page_harvester,
        product_harvester=product_page_harvester,
        details=config.provided.details,
    )
    batch_coordinator = providers.Factory(
        BatchCoordinator,
        session_factory=browser_session.provider,
        paginator=pagination_driver,
        search_harvester=search_harvester,
    )
