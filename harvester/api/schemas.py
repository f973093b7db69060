"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.exporter import ExportFormat


class ExtractRequest(BaseModel):
    """Body of POST /api/extract.

    Attributes:
        json_strings: Raw search-payload strings, one per captured response.
        format: Output file format.
    """

    model_config = ConfigDict(populate_by_name=True)

    json_strings: list[str] = Field(validation_alias="jsonStrings", min_length=1)
    format: ExportFormat = "json"


class ScrapeRequest(BaseModel):
    """Body of POST /api/scrape.

    Attributes:
        urls: Shop or category URLs; blank entries are dropped.
        format: Output file format.
        auto_paginate: Walk every result page when True.
        product_details: Visit every product linked from each URL and
            extract its detail page instead of reading the grid.
        max_products: Product cap per URL in product-detail mode.
    """

    model_config = ConfigDict(populate_by_name=True)

    urls: list[str] = Field(min_length=1)
    format: ExportFormat = "json"
    auto_paginate: bool = Field(default=True, validation_alias="autoPaginate")
    product_details: bool = Field(default=False, validation_alias="productDetails")
    max_products: int | None = Field(default=None, validation_alias="maxProducts", ge=1)

    @field_validator("urls")
    @classmethod
    def strip_blank_urls(cls, urls: list[str]) -> list[str]:
        cleaned = [url.strip() for url in urls if url and url.strip()]
        if not cleaned:
            raise ValueError("At least one non-empty URL is required")
        return cleaned
