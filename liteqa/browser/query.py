"""
Playwright adapter for the element query capability used by the healing cascade.
"""

from typing import List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from liteqa.core.interfaces import ElementHandle, ElementQuery
from liteqa.error_handling.exceptions import SelectorQueryError, TimeoutError


_VISIBLE_TEXTS_JS = """(limit) => {
    const texts = [];
    const elements = document.querySelectorAll(
        'button, a, input, label, [role="button"], [role="link"], span, div'
    );
    for (const el of elements) {
        const text = el.innerText?.trim() ||
            el.value?.trim() ||
            el.getAttribute('aria-label') ||
            el.getAttribute('title') || '';
        if (text.length > 0 && text.length < 100) {
            const rect = el.getBoundingClientRect();
            if (rect.width > 0 && rect.height > 0) {
                texts.push(text);
            }
        }
    }
    return texts.slice(0, limit);
}"""


class PlaywrightElementHandle(ElementHandle):
    """ElementHandle backed by a Playwright locator."""

    def __init__(self, locator: Locator, selector: str) -> None:
        self.locator = locator
        self.selector = selector

    async def count(self) -> int:
        try:
            return await self.locator.count()
        except PlaywrightError as e:
            raise SelectorQueryError(
                f"Query failed for {self.selector}: {e.message}",
                selector=self.selector,
                cause=e,
            ) from e

    async def wait_visible(self, timeout_ms: int) -> None:
        try:
            await self.locator.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise TimeoutError(
                f"{self.selector} not visible after {timeout_ms}ms",
                operation="wait_visible",
                timeout_ms=timeout_ms,
                cause=e,
            ) from e
        except PlaywrightError as e:
            raise SelectorQueryError(
                f"Query failed for {self.selector}: {e.message}",
                selector=self.selector,
                cause=e,
            ) from e

    def first(self) -> "PlaywrightElementHandle":
        return PlaywrightElementHandle(self.locator.first, self.selector)


class PlaywrightElementQuery(ElementQuery):
    """ElementQuery over a live Playwright page."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def locate(self, selector: str) -> PlaywrightElementHandle:
        return PlaywrightElementHandle(self.page.locator(selector), selector)

    async def visible_texts(self, limit: int = 100) -> List[str]:
        try:
            return await self.page.evaluate(_VISIBLE_TEXTS_JS, limit)
        except PlaywrightError as e:
            raise SelectorQueryError(
                f"Could not collect visible texts: {e.message}",
                selector="*",
                cause=e,
            ) from e
