"""
Unit tests for the mobile runner and the Appium WebDriver bridge.
"""

import base64
import json
from pathlib import Path

import httpx
import pytest

from liteqa.bridges.appium import W3C_ELEMENT_KEY, AppiumBridge, element_strategies
from liteqa.core.types import StepStatus, parse_step
from liteqa.error_handling.exceptions import ElementNotFound, RunnerInitializationError
from liteqa.runners.mobile import MobileRunner


PNG_BYTES = b"\x89PNG fake"


class FakeAppium:
    """In-process Appium server exposing one button labelled 'Login'."""

    def __init__(self, source="<hierarchy><text>Welcome</text></hierarchy>", healthy=True):
        self.source = source
        self.healthy = healthy
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, payload))
        path = request.url.path

        if path == "/status":
            if not self.healthy:
                return httpx.Response(503, json={"value": {"ready": False}})
            return httpx.Response(200, json={"value": {"ready": True}})
        if path == "/session" and request.method == "POST":
            return httpx.Response(200, json={"value": {"sessionId": "s1", "capabilities": {}}})
        if path == "/session/s1/element":
            if payload["value"] == 'new UiSelector().text("Login")':
                return httpx.Response(200, json={"value": {W3C_ELEMENT_KEY: "el-1"}})
            return httpx.Response(
                404,
                json={"value": {"error": "no such element", "message": "An element could not be located"}},
            )
        if path == "/session/s1/source":
            return httpx.Response(200, json={"value": self.source})
        if path == "/session/s1/window/rect":
            return httpx.Response(200, json={"value": {"x": 0, "y": 0, "width": 1000, "height": 2000}})
        if path == "/session/s1/screenshot":
            return httpx.Response(200, json={"value": base64.b64encode(PNG_BYTES).decode()})
        return httpx.Response(200, json={"value": None})

    def paths(self, method=None):
        return [path for m, path, _ in self.calls if method is None or m == method]


def make_runner(run_config, server, flow_name="Android Login"):
    bridge = AppiumBridge(
        "http://appium.test:4723/",
        {"platformName": "Android"},
        transport=httpx.MockTransport(server),
    )
    return MobileRunner(run_config, flow_name=flow_name, bridge=bridge)


class TestAppiumBridge:
    """Test the WebDriver session client."""

    def test_element_strategies_order(self):
        """Resource id lookup comes first and xpath last."""
        strategies = element_strategies("Login")

        assert len(strategies) == 6
        assert strategies[0] == ("-android uiautomator", 'new UiSelector().resourceId("Login")')
        assert strategies[-1] == ("xpath", '//*[@text="Login" or @content-desc="Login"]')

    @pytest.mark.asyncio
    async def test_session_lifecycle(self):
        """start creates a session with W3C capabilities and stop deletes it."""
        server = FakeAppium()
        bridge = AppiumBridge(
            "http://appium.test:4723", {"platformName": "Android"},
            transport=httpx.MockTransport(server),
        )

        await bridge.start()
        assert bridge.session_id == "s1"
        await bridge.stop()

        assert bridge.session_id is None
        assert server.calls[1] == (
            "POST",
            "/session",
            {"capabilities": {"alwaysMatch": {"platformName": "Android"}, "firstMatch": [{}]}},
        )
        assert server.calls[-1][:2] == ("DELETE", "/session/s1")

    @pytest.mark.asyncio
    async def test_server_down(self):
        """A failing status check is a runner initialization error."""
        bridge = AppiumBridge(
            "http://appium.test:4723", {}, transport=httpx.MockTransport(FakeAppium(healthy=False))
        )

        with pytest.raises(RunnerInitializationError, match="Appium server is not running"):
            await bridge.start()

    @pytest.mark.asyncio
    async def test_locate_falls_through_strategies(self):
        """Lookups continue past 'no such element' until one matches."""
        server = FakeAppium()
        bridge = AppiumBridge("http://appium.test:4723", {}, transport=httpx.MockTransport(server))
        await bridge.start()
        try:
            assert await bridge.locate("Login") == "el-1"
            with pytest.raises(ElementNotFound, match="Element not found: Logout"):
                await bridge.locate("Logout")
        finally:
            await bridge.stop()


class TestMobileRunner:
    """Test mobile step execution."""

    @pytest.mark.asyncio
    async def test_tap_and_type(self, run_config):
        """Tap clicks and type sets the value of the located element."""
        server = FakeAppium()
        runner = make_runner(run_config, server)

        async with runner.session():
            tap = await runner.run_step(parse_step({"action": "mobileTap", "selector": "Login"}), 1, 2)
            typed = await runner.run_step(
                parse_step({"action": "mobileType", "selector": "Login", "text": "ada"}), 2, 2
            )

        assert tap.status == StepStatus.PASSED
        assert typed.status == StepStatus.PASSED
        assert ("POST", "/session/s1/element/el-1/click", {}) in server.calls
        assert ("POST", "/session/s1/element/el-1/value", {"text": "ada"}) in server.calls

    @pytest.mark.asyncio
    async def test_wait_for_text(self, run_config):
        """Waiting succeeds once the text appears in the page source."""
        runner = make_runner(run_config, FakeAppium())

        async with runner.session():
            result = await runner.run_step(
                parse_step({"action": "mobileWaitForText", "text": "Welcome"}), 1, 1
            )

        assert result.status == StepStatus.PASSED

    @pytest.mark.asyncio
    async def test_wait_for_text_timeout_captures_screenshot(self, run_config):
        """Missing text times out and a failure screenshot is saved."""
        runner = make_runner(run_config, FakeAppium())

        async with runner.session():
            result = await runner.run_step(
                parse_step({"action": "mobileWaitForText", "text": "Goodbye", "timeout": 1}), 2, 3
            )

        expected = Path(run_config.screenshots_dir) / "Android-Login-mobile-failure-step-2.png"
        assert result.status == StepStatus.FAILED
        assert result.error == 'Text "Goodbye" not found within 1ms'
        assert result.screenshot == str(expected)
        assert expected.read_bytes() == PNG_BYTES

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "direction,start,end",
        [
            ("up", (500, 1200), (500, 800)),
            ("down", (500, 800), (500, 1200)),
            ("left", (700, 1000), (300, 1000)),
            ("right", (300, 1000), (700, 1000)),
        ],
    )
    async def test_swipe(self, run_config, direction, start, end):
        """Swipes cover 40% of the shorter side through the screen center."""
        server = FakeAppium()
        runner = make_runner(run_config, server)

        async with runner.session():
            await runner.run_step(parse_step({"action": "mobileSwipe", "direction": direction}), 1, 1)

        payload = next(p for m, path, p in server.calls if path == "/session/s1/actions")
        moves = payload["actions"][0]["actions"]
        assert (moves[0]["x"], moves[0]["y"]) == start
        assert (moves[2]["x"], moves[2]["y"]) == end
        assert moves[2]["duration"] == 300

    @pytest.mark.asyncio
    async def test_tap_missing_element(self, run_config):
        """Unlocatable elements fail the step."""
        runner = make_runner(run_config, FakeAppium())

        async with runner.session():
            result = await runner.run_step(parse_step({"action": "mobileTap", "selector": "Nope"}), 1, 1)

        assert result.status == StepStatus.FAILED
        assert result.error == "Element not found: Nope"
