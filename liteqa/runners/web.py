"""
Web runner driving a Playwright browser page.
"""

import asyncio
from pathlib import Path
from typing import Dict, Optional

from liteqa.browser.driver import PlaywrightDriver
from liteqa.browser.query import PlaywrightElementQuery
from liteqa.core.types import (
    ClickStep,
    ExpectTextStep,
    ExpectVisibleStep,
    FillStep,
    GotoStep,
    HoverStep,
    PressStep,
    RunnerType,
    ScreenshotStep,
    SelectStep,
    TypeStep,
    WaitForLoadStateStep,
    WaitForSelectorStep,
    WaitStep,
)
from liteqa.error_handling.exceptions import StepExecutionError
from liteqa.healing.locator import SelfHealingLocator
from liteqa.runners.base import BaseRunner, Executor, slugify_flow_name


class WebRunner(BaseRunner):
    """Runs web steps, resolving selectors through the self-healing cascade."""

    runner_type = RunnerType.WEB

    def __init__(self, *args, driver: Optional[PlaywrightDriver] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.driver = driver or PlaywrightDriver(self.config)
        self._screenshot_counter = 0

    def build_executors(self) -> Dict[str, Executor]:
        return {
            "goto": self.execute_goto,
            "click": self.execute_click,
            "fill": self.execute_fill,
            "type": self.execute_type,
            "expectText": self.execute_expect_text,
            "expectVisible": self.execute_expect_visible,
            "waitForSelector": self.execute_wait_for_selector,
            "waitForLoadState": self.execute_wait_for_load_state,
            "screenshot": self.execute_screenshot,
            "select": self.execute_select,
            "hover": self.execute_hover,
            "press": self.execute_press,
            "wait": self.execute_wait,
        }

    async def start(self) -> None:
        self._screenshot_counter = 0
        await self.driver.start()

    async def stop(self) -> None:
        try:
            await self.driver.stop()
        finally:
            self.healing_log.save(self.config.artifacts_dir)

    async def resolve(self, selector: str):
        """Resolve a selector to a Playwright locator, recording any healing."""
        locator = SelfHealingLocator(self.config, self.healing_log)
        resolution = await locator.find_element(
            PlaywrightElementQuery(self.driver.page), selector
        )
        if resolution.healed is not None:
            self._step_healing = resolution.healed
        return resolution.handle.locator

    # ========================================================================
    # Step executors
    # ========================================================================

    async def execute_goto(self, step: GotoStep) -> None:
        await self.driver.navigate(
            self.resolve_url(step.url),
            wait_until=step.wait_until,
            timeout=self.step_timeout(step),
        )

    async def execute_click(self, step: ClickStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.click(button=step.button, timeout=self.step_timeout(step))

    async def execute_fill(self, step: FillStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.fill(step.value, timeout=self.step_timeout(step))

    async def execute_type(self, step: TypeStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.press_sequentially(
            step.text, delay=step.delay, timeout=self.step_timeout(step)
        )

    async def execute_expect_text(self, step: ExpectTextStep) -> None:
        locator = await self.resolve(step.selector)
        text = await locator.text_content(timeout=self.step_timeout(step))

        if step.exact:
            if text != step.text:
                raise StepExecutionError(
                    f'Expected exact text "{step.text}" but got "{text}"',
                    action=step.action,
                )
        elif text is None or step.text not in text:
            raise StepExecutionError(
                f'Expected text to contain "{step.text}" but got "{text}"',
                action=step.action,
            )

    async def execute_expect_visible(self, step: ExpectVisibleStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.wait_for(state="visible", timeout=self.step_timeout(step))

    async def execute_wait_for_selector(self, step: WaitForSelectorStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.wait_for(state=step.state, timeout=self.step_timeout(step))

    async def execute_wait_for_load_state(self, step: WaitForLoadStateStep) -> None:
        await self.driver.page.wait_for_load_state(step.state, timeout=self.step_timeout(step))

    async def execute_screenshot(self, step: ScreenshotStep) -> None:
        self._screenshot_counter += 1
        name = step.name or f"screenshot-{self._screenshot_counter}"
        path = Path(self.config.screenshots_dir) / f"{slugify_flow_name(self.flow_name)}-{name}.png"
        await self.driver.save_screenshot(path, full_page=step.full_page)
        self.logger.debug(f"Screenshot saved: {path}")

    async def execute_select(self, step: SelectStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.select_option(step.value, timeout=self.step_timeout(step))

    async def execute_hover(self, step: HoverStep) -> None:
        locator = await self.resolve(step.selector)
        await locator.hover(timeout=self.step_timeout(step))

    async def execute_press(self, step: PressStep) -> None:
        if step.selector:
            locator = await self.resolve(step.selector)
            await locator.press(step.key, timeout=self.step_timeout(step))
        else:
            await self.driver.page.keyboard.press(step.key)

    async def execute_wait(self, step: WaitStep) -> None:
        await asyncio.sleep(step.duration / 1000)

    async def capture_failure_screenshot(self, index: int) -> Optional[str]:
        path = (
            Path(self.config.screenshots_dir)
            / f"{slugify_flow_name(self.flow_name)}-failure-step-{index}.png"
        )
        await self.driver.save_screenshot(path, full_page=True)
        return str(path)
