"""Configuration management for the listing harvester.

Handles all application configuration including environment variables, the
YAML selector catalogue, and default settings. Provides structured
configuration classes for the browser, the page harvester, pagination,
product-detail visits and the HTTP server.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserConfig(BaseSettings):
    """Headless browser launch settings.

    Attributes:
        headless: Whether to run Chromium without a window.
        user_agent: User-Agent header sent by every page.
        viewport_width: Viewport width in pixels.
        viewport_height: Viewport height in pixels.
        locale: Browser locale.
        block_resources: Whether to abort media, font and tracker requests.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    headless: bool = Field(default=True, validation_alias="HEADLESS")
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "en-US"
    block_resources: bool = True


class HarvestConfig(BaseSettings):
    """Page load and scroll-stabilization settings.

    Attributes:
        navigation_timeout_ms: Timeout for the initial navigation.
        wait_until: Playwright load state to wait for during navigation.
        settle_interval: Seconds to wait after each scroll.
        stable_threshold: Consecutive unchanged counts that end the loop.
        max_scroll_iterations: Hard ceiling on stabilization iterations.
        mid_scroll_every: Scroll to the page mid-point every N iterations.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    navigation_timeout_ms: int = Field(default=60000, validation_alias="NAVIGATION_TIMEOUT_MS")
    wait_until: str = "networkidle"
    settle_interval: float = Field(default=1.5, validation_alias="SETTLE_INTERVAL")
    stable_threshold: int = 5
    max_scroll_iterations: int = 100
    mid_scroll_every: int = 2


class PaginationConfig(BaseSettings):
    """Pagination walk settings.

    Attributes:
        page_param: Query parameter carrying the page number.
        max_pages: Safety ceiling on pages per URL.
        politeness_delay: Seconds to pause between consecutive pages.
        expected_params: Query parameters the platform expects alongside the
            page number; a warning is logged when any is missing.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    page_param: str = "page"
    max_pages: int = Field(default=50, validation_alias="MAX_PAGES")
    politeness_delay: float = Field(default=2.0, validation_alias="POLITENESS_DELAY")
    expected_params: list[str] = Field(default_factory=lambda: ["from", "q"])


class DetailConfig(BaseSettings):
    """Product-detail and search-results settings.

    Attributes:
        max_products: Cap on product pages visited per search URL.
        delay_min: Lower bound of the random pause between product pages.
        delay_max: Upper bound of the random pause between product pages.
        ready_timeout_ms: How long to wait for the product header to render.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    max_products: int = Field(default=100, validation_alias="MAX_PRODUCTS")
    delay_min: float = Field(default=1.0, validation_alias="DETAIL_DELAY_MIN")
    delay_max: float = Field(default=3.0, validation_alias="DETAIL_DELAY_MAX")
    ready_timeout_ms: int = 10000


class ServerConfig(BaseSettings):
    """HTTP server configuration.

    Attributes:
        host: Interface to bind.
        port: Server port.
        log_level: Root logging level.
        max_request_mb: Maximum request body size in megabytes.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    max_request_mb: int = 50


class SelectorCandidate(BaseModel):
    """One candidate in a selector fallback chain.

    Attributes:
        selector: CSS selector evaluated against the listing subtree.
        attribute: Attribute to read; None reads the element text.
    """
    selector: str
    attribute: str | None = None


DEFAULT_CONTAINERS = [
    '[data-qa-locator="product-item"]',
    ".Bm3ON",
    '[data-tracking="product-card"]',
]

DEFAULT_FIELDS: dict[str, list[SelectorCandidate]] = {
    "name": [SelectorCandidate(selector=".RfADt a", attribute="title"), SelectorCandidate(selector=".RfADt")],
    "price": [SelectorCandidate(selector=".ooOxS")],
    "original_price": [SelectorCandidate(selector=".IaHHh del"), SelectorCandidate(selector=".IaHHh")],
    "discount": [SelectorCandidate(selector=".IcOsH"), SelectorCandidate(selector=".WNoq3")],
    "rating": [SelectorCandidate(selector="[data-rating]", attribute="data-rating")],
    "review_count": [SelectorCandidate(selector=".qzqFw")],
    "sold_count": [SelectorCandidate(selector="._1cEkb span"), SelectorCandidate(selector=".m2RZo")],
    "shop_name": [],
    "location": [SelectorCandidate(selector=".oa6ri")],
    "brand": [],
    "stock": [],
    "image_url": [
        SelectorCandidate(selector="img", attribute="src"),
        SelectorCandidate(selector="img", attribute="data-src"),
    ],
    "listing_url": [SelectorCandidate(selector="a", attribute="href")],
}


DEFAULT_PRODUCT_READY = [".pdp-mod-product-badge-wrapper"]

DEFAULT_PRODUCT_FIELDS: dict[str, list[SelectorCandidate]] = {
    "name": [SelectorCandidate(selector=".pdp-mod-product-badge-title"), SelectorCandidate(selector="h1")],
    "price": [SelectorCandidate(selector=".pdp-price_type_normal"), SelectorCandidate(selector=".pdp-price")],
    "original_price": [SelectorCandidate(selector=".pdp-price_type_deleted")],
    "discount": [SelectorCandidate(selector=".pdp-product-price__discount")],
    "rating": [SelectorCandidate(selector=".score-average")],
    "review_count": [SelectorCandidate(selector=".pdp-review-summary__link")],
    "sold_count": [SelectorCandidate(selector=".pdp-product-sold")],
    "shop_name": [SelectorCandidate(selector=".pdp-seller-name"), SelectorCandidate(selector=".seller-name__title")],
    "location": [SelectorCandidate(selector=".location__text"), SelectorCandidate(selector=".seller-location")],
    "brand": [SelectorCandidate(selector=".pdp-product-brand__brand-link")],
    "stock": [SelectorCandidate(selector=".pdp-product-stock")],
    "image_url": [
        SelectorCandidate(selector=".gallery-preview-panel__image", attribute="src"),
        SelectorCandidate(selector=".pdp-mod-common-image img", attribute="src"),
    ],
}


class SelectorConfig(BaseModel):
    """Selector catalogue for container discovery and field extraction.

    Attributes:
        containers: Ordered listing-container selectors.
        load_more: Selectors for "load more" controls.
        fields: Logical field name to ordered selector candidates.
        product_ready: Selectors signalling a rendered product-detail page.
        product_fields: Field chains evaluated against a whole product-detail
            page.
    """
    containers: list[str] = Field(default_factory=lambda: list(DEFAULT_CONTAINERS))
    load_more: list[str] = Field(default_factory=list)
    fields: dict[str, list[SelectorCandidate]] = Field(
        default_factory=lambda: {name: list(chain) for name, chain in DEFAULT_FIELDS.items()}
    )
    product_ready: list[str] = Field(default_factory=lambda: list(DEFAULT_PRODUCT_READY))
    product_fields: dict[str, list[SelectorCandidate]] = Field(
        default_factory=lambda: {name: list(chain) for name, chain in DEFAULT_PRODUCT_FIELDS.items()}
    )


def _coerce_candidate(raw: Any) -> SelectorCandidate:
    """Accept either a bare selector string or a selector/attribute mapping."""
    if isinstance(raw, str):
        return SelectorCandidate(selector=raw)
    return SelectorCandidate(**raw)


def load_selector_config(path: Path) -> SelectorConfig:
    """Load the selector catalogue from YAML.

    Fields missing from the file keep their built-in defaults.

    Args:
        path: Path to the YAML catalogue.

    Returns:
        Parsed SelectorConfig, or the defaults if the file does not exist.
    """
    if not path.exists():
        return SelectorConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    selectors = SelectorConfig()
    if data.get("containers"):
        selectors.containers = list(data["containers"])
    if data.get("load_more"):
        selectors.load_more = list(data["load_more"])
    for field_name, chain in (data.get("fields") or {}).items():
        selectors.fields[field_name] = [_coerce_candidate(item) for item in chain or []]

    product_page = data.get("product_page") or {}
    if product_page.get("ready"):
        selectors.product_ready = list(product_page["ready"])
    for field_name, chain in (product_page.get("fields") or {}).items():
        selectors.product_fields[field_name] = [_coerce_candidate(item) for item in chain or []]
    return selectors


class Config:
    """Application configuration manager.

    Centralizes loading of environment-driven settings and the YAML selector
    catalogue, and provides typed access to each configuration section.
    """

    def __init__(self, resources_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            resources_dir: Directory holding selectors.yml, defaults to
                harvester/resources.
        """
        if resources_dir is None:
            resources_dir = Path(__file__).parent / "resources"

        self.resources_dir = Path(resources_dir)

        self.browser = BrowserConfig()
        self.harvest = HarvestConfig()
        self.pagination = PaginationConfig()
        self.details = DetailConfig()
        self.server = ServerConfig()
        self.selectors = load_selector_config(self.resources_dir / "selectors.yml")


# Global configuration instance
config = Config()
