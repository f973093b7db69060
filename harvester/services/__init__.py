"""Business logic services package.

Contains the batch coordinator that drives harvesting across many URLs, the
sold-count normalizer, and the exporter that turns records into spreadsheet,
CSV and JSON files.
"""
