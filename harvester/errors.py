"""Error taxonomy for harvesting and payload parsing.

Navigation and no-listing failures are scoped to a single page and are
downgraded by the pagination driver and batch coordinator. Only
SessionInitError is fatal for a whole batch.
"""


class HarvesterError(Exception):
    """Base class for all harvester errors."""


class NavigationError(HarvesterError):
    """Page failed to load within the configured timeout."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class NoListingsFoundError(HarvesterError):
    """No candidate listing-container selector matched after stabilization."""

    def __init__(self, url: str, selectors: list[str]):
        self.url = url
        self.selectors = selectors
        super().__init__(
            f"No listings found on {url} (tried {len(selectors)} container selectors)"
        )


class ParseError(HarvesterError):
    """Structured payload was not valid JSON or had an unexpected shape."""


class SessionInitError(HarvesterError):
    """Browser session could not be created."""
