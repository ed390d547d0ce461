"""
Minimal W3C WebDriver client for an Appium server.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from liteqa.error_handling.exceptions import (
    ElementNotFound,
    LiteQAError,
    RunnerInitializationError,
    StepExecutionError,
)
from liteqa.monitoring.logger import get_logger


W3C_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
SWIPE_DURATION_MS = 300


def element_strategies(selector: str) -> List[Tuple[str, str]]:
    """Lookup strategies tried in order for a mobile selector."""
    return [
        ("-android uiautomator", f'new UiSelector().resourceId("{selector}")'),
        ("-android uiautomator", f'new UiSelector().description("{selector}")'),
        ("-android uiautomator", f'new UiSelector().text("{selector}")'),
        ("-android uiautomator", f'new UiSelector().textContains("{selector}")'),
        (
            "-android uiautomator",
            f'new UiSelector().className("android.widget.Button").text("{selector}")',
        ),
        ("xpath", f'//*[@text="{selector}" or @content-desc="{selector}"]'),
    ]


class AppiumBridge:
    """Session-scoped WebDriver client talking to Appium over HTTP."""

    def __init__(
        self,
        appium_url: str,
        capabilities: Dict[str, Any],
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the bridge.

        Args:
            appium_url: Base URL of the Appium server
            capabilities: W3C capabilities for the new session
            timeout_s: HTTP timeout per request in seconds
            transport: Optional transport override (used by tests)
        """
        self.appium_url = appium_url.rstrip("/")
        self.capabilities = dict(capabilities)
        self.timeout_s = timeout_s
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.session_id: Optional[str] = None
        self.logger = get_logger("bridges.appium")

    async def start(self) -> None:
        """Check server status and create a session."""
        self._client = httpx.AsyncClient(
            base_url=self.appium_url,
            timeout=self.timeout_s,
            transport=self._transport,
        )

        try:
            response = await self._client.get("/status")
            response.raise_for_status()
        except httpx.HTTPError as e:
            await self._close_client()
            raise RunnerInitializationError(
                f"Appium server is not running at {self.appium_url}",
                runner_type="mobile",
                cause=e,
            ) from e

        try:
            value = await self._request(
                "POST",
                "/session",
                {"capabilities": {"alwaysMatch": self.capabilities, "firstMatch": [{}]}},
            )
        except LiteQAError as e:
            await self._close_client()
            raise RunnerInitializationError(
                f"Failed to create Appium session: {e.message}",
                runner_type="mobile",
                cause=e,
            ) from e

        self.session_id = value["sessionId"]
        self.logger.debug("Appium session created", extra={"session_id": self.session_id})

    async def stop(self) -> None:
        """Delete the session and close the HTTP client."""
        try:
            if self.session_id and self._client is not None:
                await self._request("DELETE", self._session_path(""))
        finally:
            self.session_id = None
            await self._close_client()
            self.logger.debug("Appium session closed")

    async def find_element(self, using: str, value: str) -> Optional[str]:
        """Return an element id, or None when nothing matches."""
        try:
            result = await self._request(
                "POST", self._session_path("/element"), {"using": using, "value": value}
            )
        except ElementNotFound:
            return None
        return result.get(W3C_ELEMENT_KEY) or result.get("ELEMENT")

    async def locate(self, selector: str) -> str:
        """
        Resolve a selector by trying each lookup strategy in order.

        Raises:
            ElementNotFound: If no strategy found the element
        """
        for using, value in element_strategies(selector):
            try:
                element_id = await self.find_element(using, value)
            except StepExecutionError as e:
                self.logger.debug(f"Lookup {using} failed for {selector}: {e.message}")
                continue
            if element_id:
                return element_id

        raise ElementNotFound(f"Element not found: {selector}", selector=selector)

    async def click(self, element_id: str) -> None:
        await self._request("POST", self._session_path(f"/element/{element_id}/click"), {})

    async def set_value(self, element_id: str, text: str) -> None:
        await self._request(
            "POST", self._session_path(f"/element/{element_id}/value"), {"text": text}
        )

    async def page_source(self) -> str:
        return await self._request("GET", self._session_path("/source"))

    async def window_size(self) -> Tuple[int, int]:
        rect = await self._request("GET", self._session_path("/window/rect"))
        return int(rect["width"]), int(rect["height"])

    async def swipe(
        self,
        start: Tuple[int, int],
        end: Tuple[int, int],
        duration_ms: int = SWIPE_DURATION_MS,
    ) -> None:
        """Perform a single-finger touch swipe between two points."""
        actions = {
            "actions": [
                {
                    "type": "pointer",
                    "id": "finger1",
                    "parameters": {"pointerType": "touch"},
                    "actions": [
                        {"type": "pointerMove", "duration": 0, "x": start[0], "y": start[1]},
                        {"type": "pointerDown", "button": 0},
                        {"type": "pointerMove", "duration": duration_ms, "x": end[0], "y": end[1]},
                        {"type": "pointerUp", "button": 0},
                    ],
                }
            ]
        }
        await self._request("POST", self._session_path("/actions"), actions)

    async def screenshot(self) -> str:
        """Return a base64-encoded PNG of the device screen."""
        return await self._request("GET", self._session_path("/screenshot"))

    def _session_path(self, suffix: str) -> str:
        if not self.session_id:
            raise StepExecutionError("Appium session not initialized")
        return f"/session/{self.session_id}{suffix}"

    async def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        if self._client is None:
            raise StepExecutionError("Appium client not initialized")

        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise StepExecutionError(f"Appium request failed: {e}", cause=e) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        value = body.get("value") if isinstance(body, dict) else None

        if response.status_code >= 400:
            error = value.get("error", "") if isinstance(value, dict) else ""
            message = value.get("message", "") if isinstance(value, dict) else ""
            if error == "no such element":
                raise ElementNotFound(message or "no such element", selector=path)
            raise StepExecutionError(
                f"Appium {method} {path} failed ({response.status_code}): {message or error}",
                details={"status_code": response.status_code},
            )

        return value

    async def _close_client(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
