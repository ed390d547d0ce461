"""
Unit tests for the shared runner contract.
"""

from unittest.mock import AsyncMock

import pytest

from liteqa.core.types import (
    ClickStep,
    HealedSelector,
    HealingStrategy,
    RunnerType,
    StepStatus,
    WaitStep,
    parse_step,
)
from liteqa.error_handling.exceptions import (
    ElementNotFound,
    RunnerInitializationError,
)
from liteqa.runners.base import BaseRunner, error_message, slugify_flow_name


HEALED = HealedSelector(
    original="#old",
    healed='[data-testid="old"]',
    strategy=HealingStrategy.DATA_TESTID_FUZZY,
    confidence=0.9,
    suggestion='Consider updating selector from "#old" to "[data-testid="old"]"',
)


class DummyRunner(BaseRunner):
    """Runner whose click executor fails for selectors starting with #fail."""

    runner_type = RunnerType.WEB

    def __init__(self, *args, start_error=None, screenshot_error=None, **kwargs):
        self.start_error = start_error
        self.screenshot_error = screenshot_error
        self.started = 0
        self.stopped = 0
        super().__init__(*args, **kwargs)

    def build_executors(self):
        return {"click": self.execute_click, "wait": self.execute_wait}

    async def start(self):
        self.started += 1
        if self.start_error:
            raise self.start_error

    async def stop(self):
        self.stopped += 1

    async def execute_click(self, step):
        if step.selector.startswith("#old"):
            self._step_healing = HEALED
        if step.selector.startswith("#fail") or step.selector == "#old-fail":
            raise ElementNotFound(f"Element not found: {step.selector}", selector=step.selector)

    async def execute_wait(self, step):
        self._step_metrics = {"waited": float(step.duration)}

    async def capture_failure_screenshot(self, index):
        if self.screenshot_error:
            raise self.screenshot_error
        return f"shot-{index}.png"


class TestHelpers:
    """Test module helpers."""

    def test_slugify_flow_name(self):
        """Whitespace runs become single dashes."""
        assert slugify_flow_name("My  Login\tFlow") == "My-Login-Flow"

    def test_error_message(self):
        """Messages come from LiteQA errors, then str(), then the class name."""
        assert error_message(ElementNotFound("gone", selector="#a")) == "gone"
        assert error_message(ValueError("bad")) == "bad"
        assert error_message(RuntimeError()) == "RuntimeError"


class TestRunStep:
    """Test step outcome reporting."""

    @pytest.mark.asyncio
    async def test_passed_step(self, run_config):
        """Successful executors produce passed results."""
        runner = DummyRunner(run_config, flow_name="Flow")

        result = await runner.run_step(ClickStep(selector="#ok"), 1, 1)

        assert result.status == StepStatus.PASSED
        assert result.error is None
        assert result.duration >= 0
        assert result.screenshot is None

    @pytest.mark.asyncio
    async def test_failed_step_carries_message_and_screenshot(self, run_config):
        """Executor errors become failed results with a failure screenshot."""
        runner = DummyRunner(run_config)

        result = await runner.run_step(ClickStep(selector="#fail"), 3, 5)

        assert result.status == StepStatus.FAILED
        assert result.error == "Element not found: #fail"
        assert result.screenshot == "shot-3.png"

    @pytest.mark.asyncio
    async def test_screenshot_failure_is_swallowed(self, run_config):
        """A failing screenshot never changes the step error."""
        runner = DummyRunner(run_config, screenshot_error=RuntimeError("no page"))

        result = await runner.run_step(ClickStep(selector="#fail"), 1, 1)

        assert result.status == StepStatus.FAILED
        assert result.error == "Element not found: #fail"
        assert result.screenshot is None

    @pytest.mark.asyncio
    async def test_unknown_action_fails_step(self, run_config):
        """Actions outside the executor table fail with a clear message."""
        runner = DummyRunner(run_config)

        unknown = await runner.run_step(parse_step({"action": "teleport"}), 1, 2)
        foreign = await runner.run_step(
            parse_step({"action": "request", "method": "GET", "url": "/x"}), 2, 2
        )

        assert unknown.status == StepStatus.FAILED
        assert unknown.error == "Unknown web action: teleport"
        assert foreign.error == "Unknown web action: request"

    @pytest.mark.asyncio
    async def test_healing_attached_to_pass_and_fail(self, run_config):
        """Healing records are reported whatever the step outcome."""
        runner = DummyRunner(run_config)

        passed = await runner.run_step(ClickStep(selector="#old"), 1, 2)
        failed = await runner.run_step(ClickStep(selector="#old-fail"), 2, 2)

        assert passed.healed_selector == HEALED
        assert failed.status == StepStatus.FAILED
        assert failed.healed_selector == HEALED

    @pytest.mark.asyncio
    async def test_step_state_reset_between_steps(self, run_config):
        """Healing and metrics never leak into the next step."""
        runner = DummyRunner(run_config)

        await runner.run_step(ClickStep(selector="#old"), 1, 3)
        waited = await runner.run_step(WaitStep(duration=0), 2, 3)
        plain = await runner.run_step(ClickStep(selector="#ok"), 3, 3)

        assert waited.healed_selector is None
        assert waited.metrics == {"waited": 0.0}
        assert plain.metrics is None
        assert plain.healed_selector is None


class TestSession:
    """Test runner session lifetime."""

    @pytest.mark.asyncio
    async def test_stop_called_after_body(self, run_config):
        """The target is released after the session body."""
        runner = DummyRunner(run_config)

        async with runner.session():
            assert runner.started == 1

        assert runner.stopped == 1

    @pytest.mark.asyncio
    async def test_stop_called_when_body_raises(self, run_config):
        """The target is released even when the body raises."""
        runner = DummyRunner(run_config)

        with pytest.raises(KeyError):
            async with runner.session():
                raise KeyError("boom")

        assert runner.stopped == 1

    @pytest.mark.asyncio
    async def test_start_failure_wrapped(self, run_config):
        """Start errors become RunnerInitializationError and still release resources."""
        runner = DummyRunner(run_config, start_error=ConnectionError("refused"))

        with pytest.raises(RunnerInitializationError) as exc_info:
            async with runner.session():
                pytest.fail("session body must not run")

        assert exc_info.value.message == "Failed to start web runner: refused"
        assert isinstance(exc_info.value.cause, ConnectionError)
        assert runner.stopped == 1

    @pytest.mark.asyncio
    async def test_initialization_error_passes_through(self, run_config):
        """RunnerInitializationError from start is re-raised unchanged."""
        original = RunnerInitializationError("No bridge", runner_type="web")
        runner = DummyRunner(run_config, start_error=original)
        runner.stop = AsyncMock(side_effect=RuntimeError("cleanup failed"))

        with pytest.raises(RunnerInitializationError) as exc_info:
            async with runner.session():
                pass

        assert exc_info.value is original
        runner.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fresh_healing_log_per_session(self, run_config):
        """Each session starts with an empty healing log."""
        runner = DummyRunner(run_config)
        runner.healing_log.append(HEALED)

        async with runner.session():
            assert len(runner.healing_log) == 0


class TestUrlsAndTimeouts:
    """Test URL resolution and timeout fallback."""

    def test_resolve_url(self, run_config):
        """Relative URLs join the base URL; absolute URLs are untouched."""
        runner = DummyRunner(run_config, base_url="https://shop.test/app/")

        assert runner.resolve_url("/login") == "https://shop.test/app/login"
        assert runner.resolve_url("cart") == "https://shop.test/app/cart"
        assert runner.resolve_url("https://other.test/x") == "https://other.test/x"

    def test_no_base_url(self, run_config):
        """Without a base URL, URLs are used as written."""
        assert DummyRunner(run_config).resolve_url("/login") == "/login"

    def test_step_timeout(self, run_config):
        """Step timeouts fall back to the configured default."""
        runner = DummyRunner(run_config)

        assert runner.step_timeout(ClickStep(selector="#a", timeout=1500)) == 1500
        assert runner.step_timeout(ClickStep(selector="#a")) == run_config.default_timeout
