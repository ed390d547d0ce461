"""
Mobile runner driving an Android device through Appium.
"""

import asyncio
import base64
import time
from pathlib import Path
from typing import Dict, Optional

from liteqa.bridges.appium import AppiumBridge
from liteqa.core.types import (
    MobileSwipeStep,
    MobileTapStep,
    MobileTypeStep,
    MobileWaitForTextStep,
    RunnerType,
)
from liteqa.error_handling.exceptions import TimeoutError
from liteqa.runners.base import BaseRunner, Executor, slugify_flow_name


SWIPE_DISTANCE_RATIO = 0.4
TEXT_POLL_INTERVAL_S = 0.5


class MobileRunner(BaseRunner):
    """Runs mobile steps over a W3C WebDriver session."""

    runner_type = RunnerType.MOBILE

    def __init__(self, *args, bridge: Optional[AppiumBridge] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.bridge = bridge or AppiumBridge(
            self.config.appium_url, self.config.mobile_capabilities
        )

    def build_executors(self) -> Dict[str, Executor]:
        return {
            "mobileTap": self.execute_tap,
            "mobileType": self.execute_type,
            "mobileWaitForText": self.execute_wait_for_text,
            "mobileSwipe": self.execute_swipe,
        }

    async def start(self) -> None:
        await self.bridge.start()

    async def stop(self) -> None:
        await self.bridge.stop()

    async def execute_tap(self, step: MobileTapStep) -> None:
        element_id = await self.bridge.locate(step.selector)
        await self.bridge.click(element_id)

    async def execute_type(self, step: MobileTypeStep) -> None:
        element_id = await self.bridge.locate(step.selector)
        await self.bridge.set_value(element_id, step.text)

    async def execute_wait_for_text(self, step: MobileWaitForTextStep) -> None:
        timeout = self.step_timeout(step)
        deadline = time.monotonic() + timeout / 1000

        while True:
            source = await self.bridge.page_source()
            if step.text in source:
                return
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f'Text "{step.text}" not found within {timeout}ms',
                    operation=step.action,
                    timeout_ms=timeout,
                )
            await asyncio.sleep(TEXT_POLL_INTERVAL_S)

    async def execute_swipe(self, step: MobileSwipeStep) -> None:
        width, height = await self.bridge.window_size()
        center_x, center_y = width / 2, height / 2
        half = min(width, height) * SWIPE_DISTANCE_RATIO / 2

        start_x, start_y, end_x, end_y = center_x, center_y, center_x, center_y
        if step.direction == "up":
            start_y, end_y = center_y + half, center_y - half
        elif step.direction == "down":
            start_y, end_y = center_y - half, center_y + half
        elif step.direction == "left":
            start_x, end_x = center_x + half, center_x - half
        elif step.direction == "right":
            start_x, end_x = center_x - half, center_x + half

        await self.bridge.swipe(
            (round(start_x), round(start_y)), (round(end_x), round(end_y))
        )

    async def capture_failure_screenshot(self, index: int) -> Optional[str]:
        if not self.bridge.session_id:
            return None

        encoded = await self.bridge.screenshot()
        path = (
            Path(self.config.screenshots_dir)
            / f"{slugify_flow_name(self.flow_name)}-mobile-failure-step-{index}.png"
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(base64.b64decode(encoded))
        return str(path)
