"""Structured search-payload ingestion.

Parses storefront search API responses captured by the user (JSON with a
`centralize_item_card.item_cards` array, either at the top level or under
`data`) into ListingRecords. Invalid payloads are collected as per-item
errors; whatever parses is still returned.
"""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..errors import ParseError
from ..models import ListingRecord, PayloadResult, PayloadStats
from ..services.quantity import sold_fields

logger = logging.getLogger(__name__)

# Prices in the payload are integers scaled by 100000
PRICE_SCALE = Decimal("100000")
ITEM_URL_TEMPLATE = "https://shopee.ph/product/{shop_id}/{item_id}"
# Placeholder for text fields the card leaves out
MISSING = "N/A"


def _deep_get(d: Any, *keys: str) -> Any:
    """Safely walk nested dicts."""
    for key in keys:
        if not isinstance(d, dict):
            return None
        d = d.get(key)
    return d


def _scaled_price(raw: Any) -> Decimal:
    try:
        value = Decimal(str(raw or 0)) / PRICE_SCALE
    except ArithmeticError:
        return Decimal("0")
    return value.quantize(Decimal("0.01"), ROUND_HALF_UP)


def find_item_cards(payload: Any) -> list[dict[str, Any]]:
    """Locate the item-card array in either supported payload layout.

    Raises:
        ParseError: If the payload is not an object or the array is malformed.
    """
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")

    cards = _deep_get(payload, "data", "centralize_item_card", "item_cards")
    if cards is None:
        cards = _deep_get(payload, "centralize_item_card", "item_cards")
    if cards is None:
        return []
    if not isinstance(cards, list):
        raise ParseError("item_cards is not an array")
    return [card for card in cards if isinstance(card, dict)]


def parse_item_card(card: dict[str, Any]) -> ListingRecord:
    """Convert one item card into a ListingRecord."""
    price_info = card.get("item_card_display_price") or {}
    sold_info = card.get("item_card_display_sold_count") or {}
    asset = card.get("item_card_displayed_asset") or {}

    price = _scaled_price(price_info.get("price"))
    strikethrough = _scaled_price(price_info.get("strikethrough_price"))
    discount = Decimal(str(price_info.get("discount") or 0))
    rating_text = _deep_get(asset, "rating", "rating_text")

    item_id = str(card.get("itemid") or "")
    shop_id = card.get("shopid")
    listing_url = ITEM_URL_TEMPLATE.format(shop_id=shop_id, item_id=item_id) if shop_id and item_id else ""

    try:
        rating = Decimal(str(rating_text)) if rating_text else None
    except ArithmeticError:
        rating = None

    return ListingRecord(
        name=asset.get("name") or "Unknown Product",
        price=price,
        original_price=strikethrough if strikethrough > 0 else None,
        discount=f"{discount.normalize():f}%" if discount > 0 else None,
        rating=rating,
        item_id=item_id,
        shop_name=_deep_get(card, "shop_data", "shop_name") or MISSING,
        in_stock=not card.get("is_sold_out", False),
        listing_url=listing_url,
        historical_sold_raw=sold_info.get("historical_sold_count_text") or MISSING,
        status=card.get("item_status") or "normal",
        **sold_fields(sold_info.get("monthly_sold_count_text") or MISSING),
    )


def extract_products_from_payload(payload_text: str) -> list[ListingRecord]:
    """Parse one raw payload string.

    Raises:
        ParseError: If the text is not valid JSON or has an unexpected shape.
    """
    try:
        payload = json.loads(payload_text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    try:
        return [parse_item_card(card) for card in find_item_cards(payload)]
    except (AttributeError, TypeError, ValueError, ArithmeticError) as e:
        raise ParseError(f"Unexpected item card shape: {e}") from e


def process_payloads(payload_texts: list[str]) -> PayloadResult:
    """Parse a list of payloads, collecting per-item errors.

    Args:
        payload_texts: Raw payload strings as pasted by the user.

    Returns:
        PayloadResult with all parsed records and summary statistics.
    """
    records: list[ListingRecord] = []
    errors: list[str] = []

    for index, text in enumerate(payload_texts, start=1):
        try:
            parsed = extract_products_from_payload(text)
        except ParseError as e:
            logger.warning(f"Payload {index} rejected: {e}")
            errors.append(f"JSON {index}: {e}")
            continue
        logger.info(f"Payload {index}: {len(parsed)} products")
        records.extend(parsed)

    sold_out = sum(1 for record in records if not record.in_stock)
    return PayloadResult(
        records=records,
        stats=PayloadStats(
            total_files=len(payload_texts),
            total_products=len(records),
            sold_out=sold_out,
            available=len(records) - sold_out,
            errors=errors,
        ),
    )
