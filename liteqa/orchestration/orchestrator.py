"""
Flow and suite orchestration.

Drives a fresh runner through each flow's setup, main and teardown phases and
aggregates the step results into flow and suite results.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence

from liteqa.config.settings import RunConfig
from liteqa.core.types import (
    BaseStep,
    Flow,
    FlowResult,
    HealedSelector,
    StepResult,
    StepStatus,
    Suite,
    SuiteResult,
)
from liteqa.monitoring.logger import get_logger
from liteqa.runners.base import BaseRunner, error_message
from liteqa.runners.factory import create_runner

logger = get_logger(__name__)


class FlowPhase(str, Enum):
    """Phases of a flow run, in execution order."""

    SETUP = "setup"
    MAIN = "main"
    TEARDOWN = "teardown"


RunnerFactory = Callable[[Flow, RunConfig], BaseRunner]


def default_runner_factory(flow: Flow, config: RunConfig) -> BaseRunner:
    """Create the registered runner for a flow's runner type."""
    return create_runner(flow.runner, config, flow_name=flow.name, base_url=flow.base_url)


class FlowOrchestrator:
    """
    Runs flows sequentially, one fresh runner per flow.

    Setup failures abort the main phase, main failures stop the main phase,
    and teardown always runs in full. Steps marked continue_on_error never
    stop a phase.
    """

    def __init__(
        self,
        config: Optional[RunConfig] = None,
        runner_factory: Optional[RunnerFactory] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: Run configuration shared by every flow (defaults to settings)
            runner_factory: Builds the runner for a flow
        """
        self.config = config or RunConfig.from_settings()
        self.runner_factory = runner_factory or default_runner_factory

    async def run_flow(self, flow: Flow) -> FlowResult:
        """
        Execute one flow.

        Errors outside step execution (runner creation, session start or stop)
        are recorded on the result instead of being raised.
        """
        logger.info(f"Running flow: {flow.name}", extra={"flow": flow.name, "runner": flow.runner.value})
        start_time = datetime.now(timezone.utc)
        started = time.monotonic()

        results: List[StepResult] = []
        healed: List[HealedSelector] = []
        error: Optional[str] = None
        runner: Optional[BaseRunner] = None

        try:
            runner = self.runner_factory(flow, self.config)
            async with runner.session():
                await self._run_phases(flow, runner, results)
        except Exception as e:
            error = error_message(e)
            logger.error(f"Flow {flow.name} failed with error: {error}", extra={"flow": flow.name})
        finally:
            if runner is not None:
                healed = runner.healing_log.records

        result = FlowResult(
            name=flow.name,
            duration=int((time.monotonic() - started) * 1000),
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            steps=results,
            error=error,
            healed_selectors=healed,
        )
        logger.info(
            f"Flow {flow.name} {result.status.value} ({result.duration}ms)",
            extra={"flow": flow.name},
        )
        return result

    async def run_suite(self, suite: Suite) -> SuiteResult:
        """Execute every flow of a suite in declaration order."""
        return await self.run_flows(suite.name, suite.flows)

    async def run_flows(self, name: str, flows: Sequence[Flow]) -> SuiteResult:
        """Execute flows sequentially and aggregate them into a suite result."""
        start_time = datetime.now(timezone.utc)
        started = time.monotonic()

        flow_results: List[FlowResult] = []
        for flow in flows:
            flow_results.append(await self.run_flow(flow))

        result = SuiteResult(
            name=name,
            duration=int((time.monotonic() - started) * 1000),
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            flows=flow_results,
        )
        summary = result.summary
        logger.info(
            f"Suite {name}: {summary.passed} passed, {summary.failed} failed, "
            f"{summary.skipped} skipped of {summary.total}"
        )
        return result

    async def _run_phases(self, flow: Flow, runner: BaseRunner, results: List[StepResult]) -> None:
        setup = flow.setup or []
        teardown = flow.teardown or []
        total = flow.total_steps

        setup_completed = await self._run_phase(
            FlowPhase.SETUP, setup, 0, total, runner, results, stop_on_failure=True
        )
        if setup_completed:
            await self._run_phase(
                FlowPhase.MAIN, flow.steps, len(setup), total, runner, results, stop_on_failure=True
            )
        else:
            logger.warning(f"Setup failed; skipping main steps of {flow.name}", extra={"flow": flow.name})

        await self._run_phase(
            FlowPhase.TEARDOWN,
            teardown,
            len(setup) + len(flow.steps),
            total,
            runner,
            results,
            stop_on_failure=False,
        )

    async def _run_phase(
        self,
        phase: FlowPhase,
        steps: Sequence[BaseStep],
        offset: int,
        total: int,
        runner: BaseRunner,
        results: List[StepResult],
        stop_on_failure: bool,
    ) -> bool:
        """
        Run one phase's steps.

        Returns:
            False if the phase stopped early on a failure, True otherwise
        """
        for position, step in enumerate(steps, start=1):
            result = await runner.run_step(step, offset + position, total)
            results.append(result)
            if (
                stop_on_failure
                and result.status == StepStatus.FAILED
                and not step.continue_on_error
            ):
                logger.debug(f"{phase.value} phase stopped at step {offset + position}")
                return False
        return True
