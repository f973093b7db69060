"""Listing acquisition for storefront pages and captured search payloads.

Contains the Playwright browser wrapper, the single-page harvester with its
scroll stabilization loop, the pagination driver, product-detail and
search-results harvesting, per-listing field extraction and structured
payload parsing.
"""
