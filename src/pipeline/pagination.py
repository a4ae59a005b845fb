from __future__ import annotations

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

from ..errors import NavigationTimeout
from .selectors import CardSelectors, DEFAULT_SELECTORS


class ScrollPaginator:
    """Reveals more cards by wheel-scrolling the listing.

    The wait after each scroll is blind: the listing lazy-loads with no
    completion signal, so there is no polling and no early exit. Running past
    the end is not detected here; the loop sees it as a cycle with nothing new.
    """

    def __init__(self, *, settle_ms: int = 10000, delta_y: int = 800, pointer: tuple[int, int] = (640, 400)) -> None:
        self.settle_ms = int(settle_ms)
        self.delta_y = int(delta_y)
        self.pointer = pointer
        self._pointer_placed = False

    def advance(self, page: Page) -> None:
        # Wheel events go to the element under the pointer
        if not self._pointer_placed:
            page.mouse.move(*self.pointer)
            self._pointer_placed = True
        page.mouse.wheel(0, self.delta_y)
        page.wait_for_timeout(self.settle_ms)


class SearchBox:
    """Per-term search used by the search-list variant (no scrolling)."""

    def __init__(
        self,
        selectors: CardSelectors = DEFAULT_SELECTORS,
        *,
        settle_ms: int = 3000,
        type_delay_ms: int = 60,
        timeout_ms: int = 30000,
    ) -> None:
        self.selectors = selectors
        self.settle_ms = int(settle_ms)
        self.type_delay_ms = int(type_delay_ms)
        self.timeout_ms = int(timeout_ms)

    def search(self, page: Page, term: str) -> int:
        """Run one search and return how many cards are shown afterwards."""
        box = page.locator(self.selectors.search_input).first
        try:
            box.wait_for(state="visible", timeout=self.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("search input not found", operation="search", target=term) from e
        box.fill("")
        box.press_sequentially(term, delay=self.type_delay_ms)
        box.press("Enter")
        page.wait_for_timeout(self.settle_ms)
        return page.locator(self.selectors.container).count()
