"""Storefront Listing Harvester Package.

Harvests product listings from e-commerce storefront pages and normalizes them
into uniform tabular records for spreadsheet, CSV and JSON export.

The application follows a modular architecture with separate concerns for:
- Headless browser driving, scroll stabilization and pagination
- Selector fallback chains for per-listing field extraction
- Parsing of pre-captured storefront search payloads
- Sold-count normalization and export formatting
- HTTP handlers that stream the generated file back to the caller
"""
