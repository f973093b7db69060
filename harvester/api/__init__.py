"""HTTP interface for the listing harvester.

aiohttp web handlers for the payload ingestion and browser harvesting paths.
"""
