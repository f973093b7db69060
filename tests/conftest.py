"""Global test configuration and fixtures.

Provides fake browser pages and sessions implementing the collaborator
protocols, zero-delay harvesting settings, sample listing markup and sample
records shared by unit and integration tests.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from harvester.config import HarvestConfig, PaginationConfig, SelectorConfig
from harvester.models import ListingRecord
from harvester.services.quantity import sold_fields

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakePage:
    """In-memory BrowserPage.

    Listing counts are replayed from `counts` on each query; once exhausted
    the last value repeats. `fragments` is what listing_html returns and
    `html` is the whole document served to product-detail extraction.
    """

    def __init__(
        self,
        fragments: list[str] | None = None,
        counts: list[int] | None = None,
        selector: str = '[data-qa-locator="product-item"]',
        navigate_error: Exception | None = None,
        html: str = "",
        final_url: str | None = None,
    ):
        self.fragments = fragments or []
        self.counts = list(counts) if counts is not None else [len(self.fragments)]
        self.selector = selector
        self.navigate_error = navigate_error
        self.html = html
        self.final_url = final_url
        self.visited: list[str] = []
        self.scrolls: list[str | int] = []
        self.load_more_clicks = 0
        self.closed = False
        self._count_index = 0

    async def navigate(self, url: str, timeout_ms: int, wait_until: str) -> None:
        self.visited.append(url)
        if self.navigate_error is not None:
            raise self.navigate_error

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return None

    async def query_count(self, selector: str) -> int:
        if selector != self.selector:
            return 0
        count = self.counts[min(self._count_index, len(self.counts) - 1)]
        self._count_index += 1
        return count

    async def scroll_to(self, position: str | int) -> None:
        self.scrolls.append(position)

    async def click_load_more(self, selectors: list[str]) -> bool:
        self.load_more_clicks += 1
        return False

    async def listing_html(self, selector: str) -> list[str]:
        return list(self.fragments) if selector == self.selector else []

    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        return selector.lstrip(".") in self.html

    async def content(self) -> str:
        return self.html

    async def current_url(self) -> str:
        if self.final_url is not None:
            return self.final_url
        return self.visited[-1] if self.visited else ""

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """In-memory BrowserSession handing out pages in order."""

    def __init__(self, pages: list[FakePage] | None = None, start_error: Exception | None = None):
        self.pages = list(pages or [])
        self.start_error = start_error
        self.started = False
        self.stopped = False
        self.opened: list[FakePage] = []

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def new_page(self) -> FakePage:
        page = self.pages.pop(0) if self.pages else FakePage()
        self.opened.append(page)
        return page


def listing_html(
    name: str = "Wireless Earbuds",
    price: str = "₱1,299.00",
    sold: str = "1.3K sold",
    href: str = "//www.lazada.com.ph/products/wireless-earbuds-i123456789-s987.html",
) -> str:
    """Build one grid tile in the storefront's markup."""
    return (
        '<div data-qa-locator="product-item">'
        f'<div class="RfADt"><a href="{href}" title="{name}">{name}</a></div>'
        f'<div class="aBrP0"><span class="ooOxS">{price}</span></div>'
        f'<div class="_1cEkb"><span>{sold}</span></div>'
        '<span class="oa6ri">Metro Manila</span>'
        f'<img src="https://img.example.com/{name.lower().replace(" ", "-")}.jpg">'
        "</div>"
    )


@pytest.fixture
def harvest_settings() -> HarvestConfig:
    """Stabilization settings with no waiting."""
    return HarvestConfig(
        navigation_timeout_ms=1000,
        settle_interval=0,
        stable_threshold=3,
        max_scroll_iterations=20,
        mid_scroll_every=2,
    )


@pytest.fixture
def pagination_settings() -> PaginationConfig:
    """Pagination settings with no politeness delay."""
    return PaginationConfig(max_pages=10, politeness_delay=0, expected_params=[])


@pytest.fixture
def selectors() -> SelectorConfig:
    """Built-in selector catalogue."""
    return SelectorConfig()


@pytest.fixture
def sample_records() -> list[ListingRecord]:
    """Records covering k-scale, plain and sold-out listings."""
    return [
        ListingRecord(
            name="Wireless Earbuds",
            price=Decimal("100"),
            item_id="1",
            listing_url="https://www.lazada.com.ph/products/earbuds-i1-s1.html",
            **sold_fields("1.3K sold"),
        ),
        ListingRecord(
            name="Phone Case",
            price=Decimal("50"),
            original_price=Decimal("80"),
            discount="-37%",
            item_id="2",
            **sold_fields("568 sold"),
        ),
        ListingRecord(
            name="USB Cable",
            price=Decimal("20"),
            in_stock=False,
            item_id="3",
            **sold_fields(None),
        ),
    ]


@pytest.fixture
def search_payload() -> str:
    """Captured search-API response with two item cards."""
    return (FIXTURES_DIR / "search_payload.json").read_text(encoding="utf-8")


@pytest.fixture
def search_payload_data(search_payload: str) -> dict[str, Any]:
    return json.loads(search_payload)


@pytest.fixture
def make_page():
    """Factory for FakePage instances."""
    return FakePage


@pytest.fixture
def make_session():
    """Factory for FakeSession instances."""
    return FakeSession


@pytest.fixture
def listing_tile():
    """Factory for listing tile markup."""
    return listing_html


def product_page_html(
    name: str = "Wireless Earbuds Pro",
    price: str = "₱1,899.00",
    original_price: str = "₱2,999.00",
    sold: str = "2.4K sold",
    shop: str = "Audio Hub PH",
    stock: str = "In stock",
) -> str:
    """Build a product-detail document in the storefront's markup."""
    return (
        "<html><body>"
        '<div class="pdp-mod-product-badge-wrapper">'
        f'<h1 class="pdp-mod-product-badge-title">{name}</h1></div>'
        f'<span class="pdp-price pdp-price_type_normal">{price}</span>'
        f'<span class="pdp-price pdp-price_type_deleted">{original_price}</span>'
        '<span class="pdp-product-price__discount">-37%</span>'
        '<span class="score-average">4.7</span>'
        '<a class="pdp-review-summary__link">1,204 Ratings</a>'
        f'<span class="pdp-product-sold">{sold}</span>'
        f'<a class="pdp-seller-name">{shop}</a>'
        '<span class="location__text">Quezon City</span>'
        '<a class="pdp-product-brand__brand-link">Soundcore</a>'
        f'<span class="pdp-product-stock">{stock}</span>'
        '<img class="gallery-preview-panel__image" src="//img.example.com/earbuds-pro.jpg">'
        "</body></html>"
    )


@pytest.fixture
def product_page():
    """Factory for product-detail markup."""
    return product_page_html
