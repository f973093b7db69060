"""Sold-count normalization.

Parses noisy human-readable quantity strings ("3K sold", "1.3k", "568",
"2,104 sold/month") into numeric values. The k-scale adjustment rule lives in
`adjust_k_scale` and is applied only to values written with a "k" suffix.
"""

import re
from decimal import Decimal, InvalidOperation

from ..models import ListingRecord, SoldQuantity

K_SCALE_RE = re.compile(r"^(\d+(?:\.\d+)?)k$")
LEADING_NUMBER_RE = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)")
SOLD_WORDS_RE = re.compile(r"sold/month|sold/mo|sold per month|sold monthly|sold")

K_SCALE_BONUS = Decimal("500")
K_SCALE_BONUS_MIN = Decimal("1")
K_SCALE_BONUS_MAX = Decimal("10")


def _format_number(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def adjust_k_scale(base: Decimal, numeric: Decimal) -> Decimal:
    """Apply the +500 adjustment to k-scale counts between 1k and 10k.

    The platform rounds sold counts to coarse "k" buckets; values from 1k to 10k
    are shifted up by 500 before computing sales estimates.
    """
    if K_SCALE_BONUS_MIN <= base <= K_SCALE_BONUS_MAX:
        return numeric + K_SCALE_BONUS
    return numeric


def clean_quantity_text(raw: str) -> str:
    """Strip sold wording, plus signs, thousands separators and whitespace."""
    cleaned = raw.lower().strip()
    cleaned = cleaned.replace("+", "").replace(",", "")
    cleaned = SOLD_WORDS_RE.sub("", cleaned)
    return re.sub(r"\s+", "", cleaned)


def normalize_quantity(raw: str | int | Decimal | None) -> SoldQuantity:
    """Parse a quantity string into numeric, adjusted and display forms.

    Args:
        raw: Quantity as scraped ("1.3K sold", "568", "3k+"). Numeric values
            are passed through unchanged.

    Returns:
        SoldQuantity. Unparseable text yields zeros with the original text
        kept in `display`; empty input yields (0, 0, "0").
    """
    if raw is None or raw == "":
        return SoldQuantity()

    if isinstance(raw, (int, Decimal)) and not isinstance(raw, bool):
        value = Decimal(raw)
        return SoldQuantity(numeric=value, adjusted=value, display=_format_number(value))

    original = str(raw)
    cleaned = clean_quantity_text(original)

    k_match = K_SCALE_RE.match(cleaned)
    if k_match:
        base = Decimal(k_match.group(1))
        numeric = base * 1000
        return SoldQuantity(
            numeric=numeric,
            adjusted=adjust_k_scale(base, numeric),
            display=f"{_format_number(base)}k",
        )

    number_match = LEADING_NUMBER_RE.match(cleaned)
    if not number_match:
        return SoldQuantity(display=original)

    try:
        numeric = Decimal(number_match.group(0))
    except InvalidOperation:
        return SoldQuantity(display=original)

    return SoldQuantity(numeric=numeric, adjusted=numeric, display=_format_number(numeric))


def sold_fields(raw: str | None) -> dict[str, object]:
    """Derived ListingRecord fields for a raw sold-count string."""
    quantity = normalize_quantity(raw)
    return {
        "sold_count_raw": raw or "0",
        "sold_count_numeric": quantity.numeric,
        "sold_count_adjusted": quantity.adjusted,
        "sold_count_display": quantity.display,
    }


def total_estimated_sales(records: list[ListingRecord]) -> Decimal:
    """Sum of price times adjusted sold count across records."""
    return sum((record.estimated_sales for record in records), Decimal("0"))
