"""
API runner issuing HTTP requests and asserting on the last response.
"""

import json
import os
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from liteqa.core.types import ExpectJsonPathStep, ExpectStatusStep, RequestStep, RunnerType
from liteqa.error_handling.exceptions import StepExecutionError
from liteqa.runners.base import BaseRunner, Executor, slugify_flow_name


BODY_METHODS = {"POST", "PUT", "PATCH"}
NO_RESPONSE_MESSAGE = "No response to check - make a request first"

_VARIABLE_PATTERN = re.compile(r"\$\{(\w+)\.?([\w.]*)\}")
_ARRAY_PART_PATTERN = re.compile(r"^(\w+)\[(\d+|\*)\]$")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def get_json_path(document: Any, path: str) -> Any:
    """
    Read a value from a decoded JSON document.

    Supports ``$.a.b``, ``a.b``, ``$.items[0].id`` and ``$.items[*]`` (the
    whole array). Returns ``MISSING`` when any segment does not exist.
    """
    if path == "$":
        return document
    if not path.startswith("$."):
        path = "$." + path

    current = document
    for part in path[2:].split("."):
        if current is None or current is MISSING:
            return MISSING

        array_match = _ARRAY_PART_PATTERN.match(part)
        if array_match:
            field, index = array_match.groups()
            current = current.get(field, MISSING) if isinstance(current, dict) else MISSING
            if not isinstance(current, list):
                return MISSING
            if index == "*":
                return current
            position = int(index)
            current = current[position] if position < len(current) else MISSING
        elif isinstance(current, dict):
            current = current.get(part, MISSING)
        elif isinstance(current, list) and part.isdigit():
            position = int(part)
            current = current[position] if position < len(current) else MISSING
        else:
            return MISSING

    return current


def stringify(value: Any) -> str:
    """Render a JSON value as text: strings verbatim, everything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


class ApiRunner(BaseRunner):
    """Runs request/assertion steps with an httpx async client."""

    runner_type = RunnerType.API

    def __init__(
        self,
        *args,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.last_response: Optional[Dict[str, Any]] = None
        self.saved_responses: Dict[str, Any] = {}
        self.request_logs: List[Dict[str, Any]] = []

    def build_executors(self) -> Dict[str, Executor]:
        return {
            "request": self.execute_request,
            "expectStatus": self.execute_expect_status,
            "expectJsonPath": self.execute_expect_json_path,
        }

    async def start(self) -> None:
        self.last_response = None
        self.saved_responses = {}
        self.request_logs = []
        self._client = httpx.AsyncClient(transport=self._transport)

    async def stop(self) -> None:
        try:
            if self._client is not None:
                await self._client.aclose()
        finally:
            self._client = None
            self.save_request_logs()

    def substitute(self, text: str) -> str:
        """Replace ``${name}`` / ``${name.path}`` with saved responses or env vars."""

        def replace(match: "re.Match[str]") -> str:
            name, path = match.group(1), match.group(2)
            if name in self.saved_responses:
                saved = self.saved_responses[name]
                if path:
                    value = get_json_path(saved, path)
                    if value is MISSING or value is None:
                        return match.group(0)
                    return stringify(value)
                return json.dumps(saved)

            if os.environ.get(name):
                return os.environ[name]

            return match.group(0)

        return _VARIABLE_PATTERN.sub(replace, text)

    async def execute_request(self, step: RequestStep) -> None:
        if self._client is None:
            raise StepExecutionError("HTTP client not initialized", action=step.action)

        url = self.resolve_url(self.substitute(step.url))
        headers = {"Content-Type": "application/json"}
        headers.update({key: self.substitute(value) for key, value in step.headers.items()})

        content = None
        if step.body is not None and step.method in BODY_METHODS:
            content = self.substitute(json.dumps(step.body))

        self.logger.debug(f"API Request: {step.method} {url}")
        start_time = time.monotonic()
        try:
            response = await self._client.request(
                step.method,
                url,
                headers=headers,
                content=content,
                timeout=self.step_timeout(step) / 1000,
            )
        except httpx.HTTPError as e:
            raise StepExecutionError(
                f"Request {step.method} {url} failed: {e}", action=step.action, cause=e
            ) from e
        duration = int((time.monotonic() - start_time) * 1000)

        if "application/json" in response.headers.get("content-type", ""):
            body = response.json()
        else:
            body = response.text

        self.last_response = {
            "status": response.status_code,
            "status_text": response.reason_phrase,
            "headers": dict(response.headers),
            "body": body,
            "duration": duration,
        }

        if step.save_response:
            self.saved_responses[step.save_response] = body

        self.request_logs.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": step.method,
            "url": url,
            "headers": step.headers,
            "body": step.body,
            "response": self.last_response,
        })

        self.logger.debug(
            f"API Response: {response.status_code} {response.reason_phrase} ({duration}ms)"
        )

    async def execute_expect_status(self, step: ExpectStatusStep) -> None:
        if self.last_response is None:
            raise StepExecutionError(NO_RESPONSE_MESSAGE, action=step.action)

        actual = self.last_response["status"]
        if actual != step.status:
            raise StepExecutionError(
                f"Expected status {step.status} but got {actual}", action=step.action
            )

    async def execute_expect_json_path(self, step: ExpectJsonPathStep) -> None:
        if self.last_response is None:
            raise StepExecutionError(NO_RESPONSE_MESSAGE, action=step.action)

        value = get_json_path(self.last_response["body"], step.path)
        if value is MISSING:
            raise StepExecutionError(
                f'JSON path "{step.path}" not found in response', action=step.action
            )

        if "value" in step.model_fields_set:
            expected = json.dumps(step.value, sort_keys=True)
            actual = json.dumps(value, sort_keys=True)
            if expected != actual:
                raise StepExecutionError(
                    f'Expected "{step.path}" to equal {json.dumps(step.value)} '
                    f"but got {json.dumps(value)}",
                    action=step.action,
                )

        if step.contains is not None:
            text = stringify(value)
            if step.contains not in text:
                raise StepExecutionError(
                    f'Expected "{step.path}" to contain "{step.contains}" but got "{text}"',
                    action=step.action,
                )

    def save_request_logs(self) -> Optional[Path]:
        """Write this flow's request log to ``<artifacts>/api-logs``."""
        if not self.request_logs:
            return None

        logs_dir = Path(self.config.artifacts_dir) / "api-logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        path = logs_dir / f"{slugify_flow_name(self.flow_name)}-api-log.json"
        path.write_text(json.dumps(self.request_logs, indent=2, default=str), encoding="utf-8")

        self.logger.debug(f"API logs saved: {path}")
        return path
