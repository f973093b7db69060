"""Browser collaborator protocols for listing harvesting.

Defines the interface the page harvester relies on, so the harvesting logic
can run against the Playwright implementation in production and against
lightweight fakes in tests.
"""

from typing import Any, Protocol


class BrowserPage(Protocol):
    """One isolated browser tab.

    Methods:
        navigate: Load a URL, raising NavigationError on failure.
        evaluate: Run a script against the live document.
        query_count: Count elements matching a selector.
        scroll_to: Scroll to "bottom", "middle", "top" or a pixel offset.
        click_load_more: Click the first visible "load more" control.
        listing_html: Outer HTML of every element matching a selector.
        wait_for: Wait for a selector to appear, reporting whether it did.
        content: Full HTML of the current document.
        current_url: URL of the document after redirects.
        close: Release the tab.
    """

    async def navigate(self, url: str, timeout_ms: int, wait_until: str) -> None:
        """Load url, waiting for the given load state.

        Args:
            url: Page URL.
            timeout_ms: Navigation timeout in milliseconds.
            wait_until: Load state ("load", "domcontentloaded", "networkidle").

        Raises:
            NavigationError: If the page did not load in time.
        """
        ...

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a function against the live document and return its JSON result."""
        ...

    async def query_count(self, selector: str) -> int:
        """Count elements currently matching selector."""
        ...

    async def scroll_to(self, position: str | int) -> None:
        """Scroll the document to a named position or pixel offset."""
        ...

    async def click_load_more(self, selectors: list[str]) -> bool:
        """Click the first visible control among selectors.

        Returns:
            True if a control was clicked.
        """
        ...

    async def listing_html(self, selector: str) -> list[str]:
        """Return outer HTML of each matching element in document order."""
        ...

    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        """Wait until selector matches, False on timeout."""
        ...

    async def content(self) -> str:
        """Return the serialized HTML of the whole document."""
        ...

    async def current_url(self) -> str:
        """Return the URL the page ended up on."""
        ...

    async def close(self) -> None:
        """Close the tab."""
        ...


class BrowserSession(Protocol):
    """Long-lived browser shared serially by all pages of a batch."""

    async def start(self) -> None:
        """Launch the browser."""
        ...

    async def stop(self) -> None:
        """Shut the browser down and release resources."""
        ...

    async def new_page(self) -> BrowserPage:
        """Open a fresh, isolated page."""
        ...
