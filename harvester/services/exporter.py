"""Export of harvested listings to Excel, CSV and JSON.

Flattens ListingRecords into rows keyed by column header, appends a TOTAL row
summing estimated sales, and renders the rows with pandas. Excel workbooks
carry a second "Product Total Sales" sheet with the sales-estimate breakdown.
"""

import io
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models import ListingRecord
from .quantity import total_estimated_sales

logger = logging.getLogger(__name__)

ExportFormat = Literal["excel", "csv", "json"]

PRODUCT_COLUMNS = [
    "Product Name",
    "Price",
    "Original Price",
    "Discount",
    "Rating",
    "Reviews",
    "Sold Count",
    "Sold Count (numeric)",
    "Adjusted Sold Count",
    "Estimated Sales",
    "Total Sold",
    "Item ID",
    "Shop Name",
    "Location",
    "Brand",
    "In Stock",
    "Status",
    "Image URL",
    "Product URL",
]

SALES_COLUMNS = [
    "Product Name",
    "Price",
    "Sold Count (numeric)",
    "Adjusted Sold Count",
    "Estimated Sales",
]

# Column widths in characters; unlisted columns get DEFAULT_WIDTH
COLUMN_WIDTHS = {
    "Price": 12,
    "Original Price": 15,
    "Discount": 10,
    "Rating": 8,
    "Reviews": 10,
    "Sold Count": 15,
    "Sold Count (numeric)": 20,
    "Adjusted Sold Count": 20,
    "Estimated Sales": 18,
    "Item ID": 15,
    "Shop Name": 20,
    "In Stock": 10,
    "Status": 10,
    "Image URL": 50,
    "Product URL": 50,
}
DEFAULT_WIDTH = 15
MAX_NAME_WIDTH = 50

CONTENT_TYPES = {
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}
EXTENSIONS = {"excel": "xlsx", "csv": "csv", "json": "json"}


@dataclass
class ExportFile:
    """Rendered export ready to be sent to a client."""

    content: bytes
    content_type: str
    filename: str


def _number(value: Decimal | None) -> float | str:
    return float(value) if value is not None else ""


def build_row(record: ListingRecord) -> dict[str, Any]:
    """Flatten one record into a column -> scalar mapping."""
    return {
        "Product Name": record.name,
        "Price": float(record.price),
        "Original Price": _number(record.original_price),
        "Discount": record.discount or "",
        "Rating": _number(record.rating),
        "Reviews": record.review_count,
        "Sold Count": record.sold_count_raw,
        "Sold Count (numeric)": record.sold_count_display,
        "Adjusted Sold Count": float(record.sold_count_adjusted),
        "Estimated Sales": float(record.estimated_sales),
        "Total Sold": record.historical_sold_raw or "",
        "Item ID": record.item_id,
        "Shop Name": record.shop_name or "",
        "Location": record.location or "",
        "Brand": record.brand or "",
        "In Stock": "Yes" if record.in_stock else "No",
        "Status": record.status or "",
        "Image URL": record.image_url,
        "Product URL": record.listing_url,
    }


def total_row(records: list[ListingRecord], columns: list[str]) -> dict[str, Any]:
    """TOTAL row: blank everywhere except the summed estimated sales."""
    row: dict[str, Any] = {column: "" for column in columns}
    row["Product Name"] = "TOTAL"
    row["Estimated Sales"] = float(total_estimated_sales(records))
    return row


def build_rows(records: list[ListingRecord], include_total: bool = True) -> list[dict[str, Any]]:
    """Flatten records into Products-sheet rows, optionally with the TOTAL row."""
    rows = [build_row(record) for record in records]
    if include_total:
        rows.append(total_row(records, PRODUCT_COLUMNS))
    return rows


def build_sales_rows(records: list[ListingRecord]) -> list[dict[str, Any]]:
    """Rows for the "Product Total Sales" sheet, with the TOTAL row."""
    rows = [{column: build_row(record)[column] for column in SALES_COLUMNS} for record in records]
    rows.append(total_row(records, SALES_COLUMNS))
    return rows


def _set_column_widths(worksheet, columns: list[str], records: list[ListingRecord]) -> None:
    name_width = min(MAX_NAME_WIDTH, max([12] + [len(record.name) for record in records]))
    for position, column in enumerate(columns, start=1):
        width = name_width if column == "Product Name" else COLUMN_WIDTHS.get(column, DEFAULT_WIDTH)
        worksheet.column_dimensions[get_column_letter(position)].width = width


def to_excel(records: list[ListingRecord]) -> bytes:
    """Render a two-sheet workbook: "Products" and "Product Total Sales"."""
    buffer = io.BytesIO()
    products = pd.DataFrame(build_rows(records), columns=PRODUCT_COLUMNS)
    sales = pd.DataFrame(build_sales_rows(records), columns=SALES_COLUMNS)

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        products.to_excel(writer, sheet_name="Products", index=False)
        sales.to_excel(writer, sheet_name="Product Total Sales", index=False)
        _set_column_widths(writer.sheets["Products"], PRODUCT_COLUMNS, records)
        _set_column_widths(writer.sheets["Product Total Sales"], SALES_COLUMNS, records)

    return buffer.getvalue()


def to_csv(records: list[ListingRecord]) -> bytes:
    """Render the Products columns plus the TOTAL row as UTF-8 CSV."""
    frame = pd.DataFrame(build_rows(records), columns=PRODUCT_COLUMNS)
    return frame.to_csv(index=False).encode("utf-8")


def to_json(records: list[ListingRecord]) -> bytes:
    """Render enriched records as a JSON array, without a TOTAL row."""
    data = []
    for record in records:
        item = record.model_dump()
        item["estimated_sales"] = record.estimated_sales
        data.append({key: float(value) if isinstance(value, Decimal) else value for key, value in item.items()})
    return json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")


RENDERERS = {"excel": to_excel, "csv": to_csv, "json": to_json}


def export_records(records: list[ListingRecord], fmt: ExportFormat, basename: str = "products") -> ExportFile:
    """Render records in the requested format.

    Args:
        records: Records to export.
        fmt: One of "excel", "csv" or "json".
        basename: Filename without extension.

    Returns:
        ExportFile with content, MIME type and filename.

    Raises:
        ValueError: If fmt is not a supported format.
    """
    if fmt not in RENDERERS:
        raise ValueError(f"Unsupported export format: {fmt}")

    content = RENDERERS[fmt](records)
    logger.info(f"Exported {len(records)} records as {fmt} ({len(content)} bytes)")
    return ExportFile(
        content=content,
        content_type=CONTENT_TYPES[fmt],
        filename=f"{basename}.{EXTENSIONS[fmt]}",
    )
