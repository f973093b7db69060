"""Data models for the listing harvester.

Defines Pydantic models for every data structure that crosses a component
boundary: harvested listing records, per-URL harvest runs, batch aggregates,
payload ingestion results and normalized sold quantities.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SoldQuantity(BaseModel):
    """Normalized human-readable quantity.

    Attributes:
        numeric: Parsed magnitude (e.g. 1300 for "1.3K sold").
        adjusted: Magnitude after the k-scale adjustment rule.
        display: Compact display form ("1.3k", "568") or the raw text when
            the input could not be parsed.
    """

    model_config = ConfigDict(frozen=True)

    numeric: Decimal = Decimal("0")
    adjusted: Decimal = Decimal("0")
    display: str = "0"


class ListingRecord(BaseModel):
    """One harvested or parsed product listing.

    Attributes:
        name: Product title, or a synthesized placeholder.
        price: Current price without currency symbol.
        original_price: Strikethrough price, None when not shown.
        discount: Discount label such as "-35%" or "35%".
        rating: Average rating, None when not shown.
        review_count: Number of reviews.
        sold_count_raw: Sold-count text exactly as scraped.
        sold_count_numeric: Parsed sold count.
        sold_count_adjusted: Sold count after the k-scale adjustment.
        sold_count_display: Compact sold-count display form.
        item_id: Identifier extracted from listing_url, empty if unmatched.
        shop_name: Seller name, empty in grid views that do not render it.
        location: Seller location.
        brand: Brand name.
        in_stock: Stock availability, True when indeterminate.
        image_url: Primary image URL.
        listing_url: Absolute product page URL.
        historical_sold_raw: Lifetime sold text (payload ingestion only).
        status: Platform item status (payload ingestion only).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    price: Decimal = Decimal("0")
    original_price: Decimal | None = None
    discount: str | None = None
    rating: Decimal | None = None
    review_count: int = 0
    sold_count_raw: str = "0"
    sold_count_numeric: Decimal = Decimal("0")
    sold_count_adjusted: Decimal = Decimal("0")
    sold_count_display: str = "0"
    item_id: str = ""
    shop_name: str | None = None
    location: str | None = None
    brand: str | None = None
    in_stock: bool = True
    image_url: str = ""
    listing_url: str = ""
    historical_sold_raw: str | None = None
    status: str | None = None

    @property
    def estimated_sales(self) -> Decimal:
        """Sales estimate: price times adjusted sold count."""
        return self.price * self.sold_count_adjusted


class TerminationReason(str, Enum):
    """Why a harvest run stopped."""

    EMPTY_PAGE = "EMPTY_PAGE"
    ERROR = "ERROR"
    PAGE_LIMIT = "PAGE_LIMIT"
    SINGLE_PAGE_MODE = "SINGLE_PAGE_MODE"
    PRODUCT_PAGES = "PRODUCT_PAGES"


class HarvestRun(BaseModel):
    """Unit of work for one input URL.

    Attributes:
        source_url: URL as supplied by the caller.
        pages_visited: Number of pages that loaded and were extracted.
        records: Records in page order, then document order.
        terminated_reason: Why the run stopped.
        error: Message of the error that stopped the run, if any.
        failed_products: Product URL to error message for product pages that
            could not be extracted (product-detail mode only).
    """

    source_url: str
    pages_visited: int = 0
    records: list[ListingRecord] = Field(default_factory=list)
    terminated_reason: TerminationReason = TerminationReason.SINGLE_PAGE_MODE
    error: str | None = None
    failed_products: dict[str, str] = Field(default_factory=dict)

    @property
    def failed_entirely(self) -> bool:
        """True when the run stopped on an error before yielding any record."""
        return self.terminated_reason == TerminationReason.ERROR and not self.records


class BatchStats(BaseModel):
    """Summary counters for a browser batch."""

    total_urls: int = 0
    total_records: int = 0
    pages_visited: int = 0
    failed_urls: int = 0
    available: int = 0
    sold_out: int = 0
    terminations: dict[str, int] = Field(default_factory=dict)


class BatchResult(BaseModel):
    """Aggregate of all harvest runs in one invocation.

    Attributes:
        all_records: Flattened records in input-URL order.
        stats: Summary counters.
        per_url_errors: URL to error message, only for URLs that failed entirely.
        runs: The individual harvest runs, in input order.
    """

    all_records: list[ListingRecord] = Field(default_factory=list)
    stats: BatchStats = Field(default_factory=BatchStats)
    per_url_errors: dict[str, str] = Field(default_factory=dict)
    runs: list[HarvestRun] = Field(default_factory=list)


class PayloadStats(BaseModel):
    """Summary counters for the structured-payload ingestion path."""

    total_files: int = 0
    total_products: int = 0
    sold_out: int = 0
    available: int = 0
    errors: list[str] = Field(default_factory=list)


class PayloadResult(BaseModel):
    """Records parsed from a list of payloads plus per-item diagnostics."""

    records: list[ListingRecord] = Field(default_factory=list)
    stats: PayloadStats = Field(default_factory=PayloadStats)
