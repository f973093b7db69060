"""Tests for product-detail and search-results harvesting."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from harvester.config import DetailConfig
from harvester.errors import NavigationError
from harvester.models import TerminationReason
from harvester.scrapers.page_harvester import PageHarvester
from harvester.scrapers.product_page import ProductPageHarvester, SearchResultsHarvester

PRODUCT_URL = "https://www.lazada.com.ph/products/wireless-earbuds-pro-i555001-s777.html"
SEARCH_URL = "https://www.lazada.com.ph/catalog/?q=earbuds"


def _href(item_id: int) -> str:
    return f"//www.lazada.com.ph/products/earbuds-i{item_id}-s1.html"


def _absolute(item_id: int) -> str:
    return f"https:{_href(item_id)}"


@pytest.fixture
def details() -> DetailConfig:
    return DetailConfig(max_products=10, delay_min=0, delay_max=0, ready_timeout_ms=100)


@pytest.fixture
def product_harvester(harvest_settings, details, selectors) -> ProductPageHarvester:
    return ProductPageHarvester(harvest_settings, details, selectors)


@pytest.fixture
def search_harvester(harvest_settings, details, selectors, product_harvester) -> SearchResultsHarvester:
    return SearchResultsHarvester(PageHarvester(harvest_settings, selectors), product_harvester, details)


class TestProductPageHarvester:
    """Test extraction of a single product-detail page."""

    @pytest.mark.asyncio
    async def test_extracts_detail_fields(self, product_harvester, make_page, make_session, product_page):
        page = make_page(html=product_page())

        record = await product_harvester.harvest(make_session([page]), PRODUCT_URL)

        assert record.name == "Wireless Earbuds Pro"
        assert record.price == Decimal("1899.00")
        assert record.original_price == Decimal("2999.00")
        assert record.discount == "-37%"
        assert record.rating == Decimal("4.7")
        assert record.review_count == 1204
        assert record.sold_count_raw == "2.4K sold"
        assert record.sold_count_adjusted == Decimal("2900")
        assert record.shop_name == "Audio Hub PH"
        assert record.location == "Quezon City"
        assert record.brand == "Soundcore"
        assert record.in_stock is True
        assert record.image_url == "https://img.example.com/earbuds-pro.jpg"
        assert record.listing_url == PRODUCT_URL
        assert record.item_id == "555001"
        assert page.closed is True

    @pytest.mark.asyncio
    async def test_item_id_follows_redirect(self, product_harvester, make_page, make_session, product_page):
        landed = "https://www.lazada.com.ph/products/wireless-earbuds-pro-i555002-s778.html?spm=a2o4l"
        page = make_page(html=product_page(), final_url=landed)

        record = await product_harvester.harvest(make_session([page]), PRODUCT_URL)

        assert record.listing_url == landed
        assert record.item_id == "555002"

    @pytest.mark.asyncio
    async def test_out_of_stock(self, product_harvester, make_page, make_session, product_page):
        page = make_page(html=product_page(stock="Out of Stock"))

        record = await product_harvester.harvest(make_session([page]), PRODUCT_URL)

        assert record.in_stock is False

    @pytest.mark.asyncio
    async def test_bare_page_uses_fallbacks(self, product_harvester, make_page, make_session):
        page = make_page(html="<html><body><h1>Plain Mug</h1><p>12 sold</p></body></html>")

        record = await product_harvester.harvest(make_session([page]), PRODUCT_URL, index=4)

        assert record.name == "Plain Mug"
        assert record.price == Decimal("0")
        assert record.rating is None
        assert record.sold_count_raw == "12 sold"

    @pytest.mark.asyncio
    async def test_navigation_error_closes_page(self, product_harvester, make_page, make_session):
        page = make_page(navigate_error=NavigationError(PRODUCT_URL, "Timeout 1000ms exceeded"))

        with pytest.raises(NavigationError):
            await product_harvester.harvest(make_session([page]), PRODUCT_URL)

        assert page.closed is True


class TestSearchResultsHarvester:
    """Test expansion of a search page into product pages."""

    @pytest.mark.asyncio
    async def test_visits_each_product_once_in_grid_order(
        self, search_harvester, make_page, make_session, listing_tile, product_page
    ):
        search_page = make_page(
            fragments=[
                listing_tile("Earbuds A", href=_href(101)),
                listing_tile("Earbuds B", href=_href(102)),
                listing_tile("Earbuds A again", href=_href(101)),
            ]
        )
        products = [
            make_page(html=product_page(name="Earbuds A")),
            make_page(html=product_page(name="Earbuds B")),
        ]
        session = make_session([search_page, *products])

        run = await search_harvester.run(session, SEARCH_URL)

        assert [record.name for record in run.records] == ["Earbuds A", "Earbuds B"]
        assert [record.item_id for record in run.records] == ["101", "102"]
        assert [page.visited for page in products] == [[_absolute(101)], [_absolute(102)]]
        assert run.terminated_reason == TerminationReason.PRODUCT_PAGES
        assert run.pages_visited == 3
        assert run.failed_products == {}

    @pytest.mark.asyncio
    async def test_product_cap(self, search_harvester, make_page, make_session, listing_tile, product_page):
        search_page = make_page(fragments=[listing_tile(f"Item {i}", href=_href(i)) for i in range(1, 6)])
        session = make_session([search_page] + [make_page(html=product_page()) for _ in range(5)])

        run = await search_harvester.run(session, SEARCH_URL, max_products=2)

        assert [record.item_id for record in run.records] == ["1", "2"]
        assert len(session.opened) == 3

    @pytest.mark.asyncio
    async def test_failed_product_is_isolated(
        self, search_harvester, make_page, make_session, listing_tile, product_page
    ):
        search_page = make_page(fragments=[listing_tile(f"Item {i}", href=_href(i)) for i in range(1, 4)])
        session = make_session([
            search_page,
            make_page(html=product_page(name="First")),
            make_page(navigate_error=NavigationError(_absolute(2), "Timeout 1000ms exceeded")),
            make_page(html=product_page(name="Third")),
        ])

        run = await search_harvester.run(session, SEARCH_URL)

        assert [record.name for record in run.records] == ["First", "Third"]
        assert list(run.failed_products) == [_absolute(2)]
        assert run.terminated_reason == TerminationReason.PRODUCT_PAGES
        assert run.failed_entirely is False

    @pytest.mark.asyncio
    async def test_all_products_failing_is_error(self, search_harvester, make_page, make_session, listing_tile):
        search_page = make_page(fragments=[listing_tile("Only", href=_href(9))])
        session = make_session([
            search_page,
            make_page(navigate_error=NavigationError(_absolute(9), "net::ERR_ABORTED")),
        ])

        run = await search_harvester.run(session, SEARCH_URL)

        assert run.failed_entirely is True
        assert run.error == "All 1 product pages failed"

    @pytest.mark.asyncio
    async def test_random_pause_between_products(
        self, harvest_settings, selectors, make_page, make_session, listing_tile, product_page
    ):
        details = DetailConfig(delay_min=1.0, delay_max=3.0)
        harvester = SearchResultsHarvester(
            PageHarvester(harvest_settings, selectors),
            ProductPageHarvester(harvest_settings, details, selectors),
            details,
        )
        search_page = make_page(fragments=[listing_tile(f"Item {i}", href=_href(i)) for i in range(1, 4)])
        session = make_session([search_page] + [make_page(html=product_page()) for _ in range(3)])

        with patch("harvester.scrapers.product_page.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await harvester.run(session, SEARCH_URL)

        # Zero-length waits come from the grid's scroll settling
        pauses = [call.args[0] for call in sleep.await_args_list if call.args[0]]
        assert len(pauses) == 2
        assert all(1.0 <= pause <= 3.0 for pause in pauses)
