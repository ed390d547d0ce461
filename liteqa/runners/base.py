"""
Step runner contract shared by every live-target runner.
"""

import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional
from urllib.parse import urljoin

from liteqa.config.settings import RunConfig
from liteqa.core.types import BaseStep, HealedSelector, RunnerType, StepResult, StepStatus
from liteqa.error_handling.exceptions import (
    LiteQAError,
    RunnerInitializationError,
    StepExecutionError,
)
from liteqa.healing.locator import HealingLog
from liteqa.monitoring.logger import get_logger, log_step_event


Executor = Callable[[Any], Awaitable[None]]


def error_message(error: BaseException) -> str:
    """Best human-readable message for an exception."""
    if isinstance(error, LiteQAError):
        return error.message
    message = getattr(error, "message", None) or str(error)
    return message or error.__class__.__name__


def slugify_flow_name(name: str) -> str:
    """Flow name with whitespace runs replaced by dashes, for artifact file names."""
    return "-".join(name.split())


class BaseRunner(ABC):
    """
    Executes single steps against one live target.

    Subclasses declare their executor table and session lifetime; this class
    turns every executor outcome into a StepResult.
    """

    runner_type: RunnerType

    def __init__(
        self,
        config: RunConfig,
        flow_name: str = "",
        base_url: Optional[str] = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            config: Run configuration snapshot
            flow_name: Name of the flow being run (used for artifacts)
            base_url: Base URL for relative step URLs
        """
        self.config = config
        self.flow_name = flow_name
        self.base_url = base_url
        self.healing_log = HealingLog()
        self.logger = get_logger(f"runners.{self.runner_type.value}")
        self.executors: Dict[str, Executor] = self.build_executors()

        self._step_healing: Optional[HealedSelector] = None
        self._step_metrics: Optional[Dict[str, float]] = None

    @abstractmethod
    def build_executors(self) -> Dict[str, Executor]:
        """Return the action tag -> executor table of this runner."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Acquire the live target."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Release the live target."""
        pass

    @asynccontextmanager
    async def session(self) -> AsyncIterator["BaseRunner"]:
        """
        Hold the live target for the duration of a flow.

        A fresh healing log is created per session. The target is stopped on
        exit, including when start itself fails.

        Raises:
            RunnerInitializationError: If the live target could not be started
        """
        self.healing_log = HealingLog()
        try:
            await self.start()
        except Exception as e:
            await self._release_after_failed_start()
            if isinstance(e, RunnerInitializationError):
                raise
            raise RunnerInitializationError(
                f"Failed to start {self.runner_type.value} runner: {error_message(e)}",
                runner_type=self.runner_type.value,
                cause=e,
            ) from e

        try:
            yield self
        finally:
            await self.stop()

    async def run_step(self, step: BaseStep, index: int, total: int) -> StepResult:
        """
        Execute one step and report its outcome.

        Args:
            step: Step to execute
            index: Declared position of the step within the flow (1-based)
            total: Number of declared steps in the flow

        Returns:
            Passed or failed StepResult; never raises for step-level errors
        """
        self._step_healing = None
        self._step_metrics = None

        self.logger.info(f"[{index}/{total}] {step.action} {step.label()}")
        log_step_event("started", self.flow_name, index, step.action)
        start_time = time.monotonic()

        try:
            executor = self.executors.get(step.action)
            if executor is None:
                raise StepExecutionError(
                    f"Unknown {self.runner_type.value} action: {step.action}",
                    action=step.action,
                )
            await executor(step)
        except Exception as e:
            duration = self._elapsed_ms(start_time)
            message = error_message(e)
            self.logger.error(f"[{index}/{total}] {step.action} failed: {message}")
            log_step_event(
                "failed", self.flow_name, index, step.action, {"error": message}
            )
            screenshot = await self._safe_failure_screenshot(index)
            return StepResult(
                step=step,
                status=StepStatus.FAILED,
                duration=duration,
                error=message,
                screenshot=screenshot,
                healed_selector=self._step_healing,
                metrics=self._step_metrics,
            )

        duration = self._elapsed_ms(start_time)
        self.logger.info(f"[{index}/{total}] {step.action} passed ({duration}ms)")
        log_step_event("passed", self.flow_name, index, step.action, {"duration_ms": duration})
        return StepResult(
            step=step,
            status=StepStatus.PASSED,
            duration=duration,
            healed_selector=self._step_healing,
            metrics=self._step_metrics,
        )

    async def capture_failure_screenshot(self, index: int) -> Optional[str]:
        """Save a screenshot for a failed step; runners without a screen return None."""
        return None

    def step_timeout(self, step: BaseStep) -> int:
        """Step timeout in milliseconds, falling back to the configured default."""
        return step.timeout or self.config.default_timeout

    def resolve_url(self, url: str) -> str:
        """Resolve a relative step URL against the flow's base URL."""
        if self.base_url and "://" not in url:
            return urljoin(self.base_url.rstrip("/") + "/", url.lstrip("/"))
        return url

    async def _safe_failure_screenshot(self, index: int) -> Optional[str]:
        try:
            return await self.capture_failure_screenshot(index)
        except Exception as e:
            self.logger.warning(f"Failure screenshot for step {index} not captured: {error_message(e)}")
            return None

    async def _release_after_failed_start(self) -> None:
        try:
            await self.stop()
        except Exception as e:
            self.logger.warning(
                f"Cleanup after failed {self.runner_type.value} start raised: {error_message(e)}"
            )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)
