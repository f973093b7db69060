"""Per-listing field extraction with ordered selector fallback chains.

Storefront markup varies across template variants and over time, so every
logical field is resolved through an ordered list of extraction strategies.
Each strategy is a pure function over a parsed listing subtree; the first one
that yields non-empty text wins, otherwise the field's default applies.
"""

import logging
import re
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Tag

from ..config import SelectorCandidate, SelectorConfig
from ..models import ListingRecord
from ..services.quantity import sold_fields

logger = logging.getLogger(__name__)

Strategy = Callable[[Tag], str | None]

SOLD_TEXT_RE = re.compile(r"^[\d.,]+[kK]?\s+sold$", re.IGNORECASE)
ITEM_ID_RE = re.compile(r"i(\d+)-")
NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
OUT_OF_STOCK_RE = re.compile(r"out of stock|sold out", re.IGNORECASE)


def css_text(selector: str) -> Strategy:
    """Strategy reading the text of the first element matching selector."""

    def strategy(node: Tag) -> str | None:
        tag = node.select_one(selector)
        if tag is None:
            return None
        return " ".join(tag.stripped_strings)

    return strategy


def css_attr(selector: str, attribute: str) -> Strategy:
    """Strategy reading an attribute of the first element matching selector."""

    def strategy(node: Tag) -> str | None:
        tag = node.select_one(selector)
        if tag is None:
            return None
        value = tag.get(attribute)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else None

    return strategy


def scan_text(pattern: re.Pattern[str]) -> Strategy:
    """Strategy returning the first text leaf under node matching pattern.

    Used where the target element carries no stable class name.
    """

    def strategy(node: Tag) -> str | None:
        for text in node.find_all(string=True):
            if isinstance(text, Comment):
                continue
            candidate = text.strip()
            if candidate and pattern.match(candidate):
                return candidate
        return None

    return strategy


def strategy_for(candidate: SelectorCandidate) -> Strategy:
    """Build the strategy for one catalogue entry."""
    if candidate.attribute:
        return css_attr(candidate.selector, candidate.attribute)
    return css_text(candidate.selector)


def build_field_strategies(fields: dict[str, list[SelectorCandidate]]) -> dict[str, list[Strategy]]:
    """Turn a field catalogue into field -> ordered strategies.

    The sold-count chain always ends with a scan of every text leaf for a
    "<number>[k] sold" string.
    """
    strategies = {
        field_name: [strategy_for(candidate) for candidate in chain]
        for field_name, chain in fields.items()
    }
    strategies.setdefault("sold_count", []).append(scan_text(SOLD_TEXT_RE))
    return strategies


def extract_field(
    node: Tag,
    strategies: list[Strategy],
    default: str | None = None,
    accept: Callable[[str], bool] | None = None,
) -> str | None:
    """Return the first non-empty strategy result, or default.

    Args:
        node: Parsed listing subtree.
        strategies: Ordered extraction strategies.
        default: Value returned when every strategy comes up empty.
        accept: Optional predicate rejecting otherwise non-empty values.
    """
    for strategy in strategies:
        value = strategy(node)
        if value and (accept is None or accept(value)):
            return value
    return default


def parse_price(text: str | None) -> Decimal | None:
    """Parse "₱1,299.00" style text into a Decimal."""
    if not text:
        return None
    match = NUMBER_RE.search(text.replace(",", ""))
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def parse_rating(text: str | None) -> Decimal | None:
    """Parse a rating value such as "4.8" or "4.8/5"."""
    if not text:
        return None
    match = NUMBER_RE.search(text)
    return Decimal(match.group(0)) if match else None


def parse_review_count(text: str | None) -> int:
    """Parse "(1,234)" style review counters, 0 when absent."""
    if not text:
        return 0
    match = re.search(r"\d+", text.replace(",", ""))
    return int(match.group(0)) if match else 0


def extract_item_id(url: str) -> str:
    """Extract the numeric item ID from a listing URL, "" when unmatched."""
    match = ITEM_ID_RE.search(url or "")
    return match.group(1) if match else ""


def absolutize_url(href: str | None, base_url: str = "") -> str:
    """Resolve protocol-relative and relative links."""
    if not href:
        return ""
    if href.startswith("//"):
        return f"https:{href}"
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url, href) if base_url else href


def _is_real_image(value: str) -> bool:
    return not value.startswith("data:")


class FieldExtractor:
    """Builds ListingRecords from listing subtrees using the selector catalogue.

    The grid field chains are used unless `fields` names another catalogue,
    such as the product-detail chains.
    """

    def __init__(
        self, selectors: SelectorConfig, fields: dict[str, list[SelectorCandidate]] | None = None
    ):
        self.strategies = build_field_strategies(selectors.fields if fields is None else fields)

    def _field(self, node: Tag, name: str, **kwargs) -> str | None:
        return extract_field(node, self.strategies.get(name, []), **kwargs)

    def extract(self, node: Tag, index: int, base_url: str = "") -> ListingRecord:
        """Extract one listing.

        Args:
            node: Parsed listing subtree.
            index: 1-based position of the listing on its page, used for the
                placeholder name.
            base_url: Page URL for resolving relative links.

        Returns:
            ListingRecord; never None, even when every field is missing.
        """
        listing_url = absolutize_url(self._field(node, "listing_url"), base_url)
        stock_text = self._field(node, "stock")
        price = parse_price(self._field(node, "price"))

        record = ListingRecord(
            name=self._field(node, "name", default=f"Unknown Product {index}"),
            price=price if price is not None else Decimal("0"),
            original_price=parse_price(self._field(node, "original_price")),
            discount=self._field(node, "discount"),
            rating=parse_rating(self._field(node, "rating")),
            review_count=parse_review_count(self._field(node, "review_count")),
            item_id=extract_item_id(listing_url),
            shop_name=self._field(node, "shop_name"),
            location=self._field(node, "location"),
            brand=self._field(node, "brand"),
            in_stock=not (stock_text and OUT_OF_STOCK_RE.search(stock_text)),
            image_url=absolutize_url(
                self._field(node, "image_url", accept=_is_real_image), base_url
            ),
            listing_url=listing_url,
            **sold_fields(self._field(node, "sold_count")),
        )

        if not record.item_id:
            logger.debug("No item ID in listing URL %r", listing_url)
        return record

    def extract_html(self, html: str, index: int, base_url: str = "") -> ListingRecord:
        """Parse one listing's outer HTML and extract it."""
        soup = BeautifulSoup(html, "lxml")
        return self.extract(soup, index, base_url)
