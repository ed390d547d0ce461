"""
Playwright browser driver implementation.
"""

import asyncio
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from liteqa.config.settings import RunConfig
from liteqa.monitoring.logger import get_logger, log_performance_metric


ANGULAR_HYDRATION_TIMEOUT_MS = 5000

_ANGULAR_STABLE_JS = """() => {
    const ngPresent = window.getAllAngularRootElements?.() || window.ng?.getComponent;
    if (!ngPresent) {
        return true;
    }
    const zone = window.Zone?.current;
    if (zone) {
        return !zone._hasPendingMicrotasks && !zone._hasPendingMacrotasks;
    }
    return true;
}"""


class PlaywrightDriver:
    """Playwright-based browser session owning one browser, context and page."""

    def __init__(self, config: RunConfig) -> None:
        """
        Initialize the Playwright driver.

        Args:
            config: Run configuration (browser, headless, slow_mo, viewport)
        """
        self.config = config
        self.browser_name = config.browser
        self.headless = config.headless
        self.slow_mo = config.slow_mo
        self.viewport_width = config.viewport.width
        self.viewport_height = config.viewport.height

        self.logger = get_logger("browser.driver")
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        """Start the browser and create a page."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        if self._browser is None:
            self.logger.info(
                f"Starting {self.browser_name} browser",
                extra={
                    "headless": self.headless,
                    "viewport": f"{self.viewport_width}x{self.viewport_height}",
                },
            )
            browser_type = getattr(self._playwright, self.browser_name)
            self._browser = await browser_type.launch(
                headless=self.headless,
                slow_mo=self.slow_mo,
            )

        if self._context is None:
            self._context = await self._browser.new_context(
                viewport={
                    "width": self.viewport_width,
                    "height": self.viewport_height,
                },
            )

        if self._page is None:
            self._page = await self._context.new_page()

    async def stop(self) -> None:
        """
        Stop the browser and cleanup resources.

        Every resource is closed even when an earlier close fails; the first
        failure is re-raised once all of them have been released.
        """
        first_error: Optional[BaseException] = None
        for attr, method in (
            ("_page", "close"),
            ("_context", "close"),
            ("_browser", "close"),
            ("_playwright", "stop"),
        ):
            resource = getattr(self, attr)
            if resource is None:
                continue
            setattr(self, attr, None)
            try:
                await getattr(resource, method)()
            except Exception as e:
                self.logger.warning(f"Failed to close {attr.lstrip('_')}: {e}")
                if first_error is None:
                    first_error = e

        self.logger.debug("Browser stopped")
        if first_error is not None:
            raise first_error

    @property
    def page(self) -> Page:
        """Get the current page object."""
        if not self._page:
            raise RuntimeError("Browser not started. Call start() first.")
        return self._page

    async def navigate(self, url: str, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        """Navigate to a URL and wait for framework hydration."""
        self.logger.info("Navigating to URL", extra={"url": url})
        start_time = asyncio.get_event_loop().time()

        await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        await self.wait_for_angular_hydration()

        elapsed_ms = (asyncio.get_event_loop().time() - start_time) * 1000
        log_performance_metric("page_navigation", elapsed_ms, context={"url": url})

    async def wait_for_angular_hydration(self) -> None:
        """Wait for Angular zone stability when the page is an Angular app."""
        try:
            await self.page.wait_for_function(
                _ANGULAR_STABLE_JS, timeout=ANGULAR_HYDRATION_TIMEOUT_MS
            )
        except PlaywrightError as e:
            # Not an Angular app, or hydration never settled
            self.logger.debug(f"Hydration wait skipped: {e}")

    async def save_screenshot(self, path: Path, full_page: bool = False) -> Path:
        """
        Save a screenshot to file.

        Args:
            path: Path to save the screenshot
            full_page: Capture the full scrollable page

        Returns:
            The written path
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.debug("Saving screenshot", extra={"path": str(path)})
        await self.page.screenshot(path=str(path), type="png", full_page=full_page)
        return path

    async def __aenter__(self) -> "PlaywrightDriver":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
