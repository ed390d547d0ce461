"""
Desktop runner forwarding steps to a JSON-lines automation bridge.
"""

from typing import Any, Dict, Optional

from liteqa.bridges.subprocess_bridge import SubprocessBridge
from liteqa.core.interfaces import CommandBridge
from liteqa.core.types import (
    DesktopClickStep,
    DesktopCloseStep,
    DesktopLaunchStep,
    DesktopTypeStep,
    RunnerType,
)
from liteqa.error_handling.exceptions import (
    RunnerInitializationError,
    StepExecutionError,
)
from liteqa.runners.base import BaseRunner, Executor, error_message


class DesktopRunner(BaseRunner):
    """Runs desktop steps through a CommandBridge."""

    runner_type = RunnerType.DESKTOP

    def __init__(self, *args, bridge: Optional[CommandBridge] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.bridge = bridge

    def build_executors(self) -> Dict[str, Executor]:
        return {
            "desktopLaunch": self.execute_launch,
            "desktopClick": self.execute_click,
            "desktopType": self.execute_type,
            "desktopClose": self.execute_close,
        }

    async def start(self) -> None:
        if self.bridge is None:
            if not self.config.desktop_bridge_command:
                raise RunnerInitializationError(
                    "Desktop testing requires a bridge command (LITEQA_DESKTOP_BRIDGE_COMMAND)",
                    runner_type=self.runner_type.value,
                )
            self.bridge = SubprocessBridge(self.config.desktop_bridge_command, name="desktop-bridge")
        await self.bridge.start()

    async def stop(self) -> None:
        if self.bridge is None:
            return
        try:
            await self.bridge.send({"action": "close"}, self.config.default_timeout)
        except Exception as e:
            self.logger.debug(f"Close on shutdown ignored: {error_message(e)}")
        await self.bridge.stop()

    async def send(self, step: Any, command: Dict[str, Any]) -> Dict[str, Any]:
        """Send a command for a step and raise when the bridge reports an error."""
        reply = await self.bridge.send(command, self.step_timeout(step))
        if reply.get("error"):
            raise StepExecutionError(str(reply["error"]), action=step.action)
        return reply

    async def execute_launch(self, step: DesktopLaunchStep) -> None:
        reply = await self.send(step, {"action": "launch", "app": step.app, "args": step.args})
        if reply.get("title"):
            self.logger.debug(f"Launched window: {reply['title']}")

    async def execute_click(self, step: DesktopClickStep) -> None:
        await self.send(
            step,
            {"action": "click", "selector": step.selector, "controlType": step.control_type},
        )

    async def execute_type(self, step: DesktopTypeStep) -> None:
        await self.send(step, {"action": "type", "selector": step.selector, "text": step.text})

    async def execute_close(self, step: DesktopCloseStep) -> None:
        await self.send(step, {"action": "close"})
