"""
Unit tests for the API runner using an in-process HTTP transport.
"""

import json
from pathlib import Path

import httpx
import pytest

from liteqa.core.types import StepStatus, parse_step
from liteqa.runners.api import (
    MISSING,
    NO_RESPONSE_MESSAGE,
    ApiRunner,
    get_json_path,
    stringify,
)


ORDER = {
    "id": 42,
    "status": "paid",
    "customer": {"name": "Ada Lovelace", "tags": ["vip", "beta"]},
    "items": [{"sku": "A-1", "qty": 2}, {"sku": "B-7", "qty": 1}],
    "note": None,
}


class RecordingApp:
    """Tiny HTTP app that records every request it receives."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/login" and request.method == "POST":
            return httpx.Response(200, json={"token": "tok-123", "user": {"id": 7}})
        if path == "/orders/42":
            return httpx.Response(200, json=ORDER)
        if path == "/health":
            return httpx.Response(200, text="ok", headers={"content-type": "text/plain"})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def app():
    return RecordingApp()


@pytest.fixture
def runner(run_config, app):
    return ApiRunner(
        run_config,
        flow_name="Orders API",
        base_url="https://api.test",
        transport=httpx.MockTransport(app),
    )


async def run_steps(runner, *raw_steps):
    """Run raw steps inside one session and return their results."""
    steps = [parse_step(raw) for raw in raw_steps]
    async with runner.session():
        return [await runner.run_step(step, i, len(steps)) for i, step in enumerate(steps, 1)]


class TestJsonPath:
    """Test the JSON path reader."""

    def test_root(self):
        assert get_json_path(ORDER, "$") is ORDER

    def test_nested_fields(self):
        assert get_json_path(ORDER, "$.customer.name") == "Ada Lovelace"
        assert get_json_path(ORDER, "customer.name") == "Ada Lovelace"

    def test_array_index_and_wildcard(self):
        assert get_json_path(ORDER, "$.items[1].sku") == "B-7"
        assert get_json_path(ORDER, "items[*]") == ORDER["items"]
        assert get_json_path(ORDER, "customer.tags.0") == "vip"

    def test_missing_segments(self):
        assert get_json_path(ORDER, "$.customer.email") is MISSING
        assert get_json_path(ORDER, "$.items[5].sku") is MISSING
        assert get_json_path(ORDER, "$.status[0]") is MISSING
        assert get_json_path(ORDER, "$.note.value") is MISSING

    def test_explicit_null_is_not_missing(self):
        assert get_json_path(ORDER, "$.note") is None

    def test_stringify(self):
        assert stringify("paid") == "paid"
        assert stringify(42) == "42"
        assert stringify(["vip"]) == '["vip"]'


class TestRequests:
    """Test request execution."""

    @pytest.mark.asyncio
    async def test_request_and_status(self, runner, app):
        """Requests resolve against the base URL and statuses are checked."""
        results = await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/orders/42"},
            {"action": "expectStatus", "status": 200},
        )

        assert [r.status for r in results] == [StepStatus.PASSED, StepStatus.PASSED]
        assert str(app.requests[0].url) == "https://api.test/orders/42"
        assert app.requests[0].headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_status_mismatch(self, runner):
        """A different status fails with both values in the message."""
        results = await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/missing"},
            {"action": "expectStatus", "status": 200},
        )

        assert results[0].status == StepStatus.PASSED
        assert results[1].error == "Expected status 200 but got 404"

    @pytest.mark.asyncio
    async def test_assertion_without_response(self, runner):
        """Assertions before any request fail."""
        results = await run_steps(
            runner,
            {"action": "expectStatus", "status": 200},
            {"action": "expectJsonPath", "path": "$.id"},
        )

        assert results[0].error == NO_RESPONSE_MESSAGE
        assert results[1].error == NO_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_body_only_sent_for_write_methods(self, runner, app):
        """GET bodies are dropped; POST bodies are sent as JSON."""
        await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/orders/42", "body": {"x": 1}},
            {"action": "request", "method": "POST", "url": "/login", "body": {"user": "ada"}},
        )

        assert app.requests[0].content == b""
        assert json.loads(app.requests[1].content) == {"user": "ada"}

    @pytest.mark.asyncio
    async def test_saved_response_substitution(self, runner, app):
        """Saved responses feed later URLs, headers and bodies."""
        results = await run_steps(
            runner,
            {
                "action": "request",
                "method": "POST",
                "url": "/login",
                "body": {"user": "ada"},
                "saveResponse": "login",
            },
            {
                "action": "request",
                "method": "PUT",
                "url": "/users/${login.user.id}",
                "headers": {"Authorization": "Bearer ${login.token}"},
                "body": {"owner": "${login.user.id}", "unknown": "${nothing.here}"},
            },
        )

        assert results[1].status == StepStatus.PASSED
        second = app.requests[1]
        assert second.url.path == "/users/7"
        assert second.headers["authorization"] == "Bearer tok-123"
        assert json.loads(second.content) == {"owner": "7", "unknown": "${nothing.here}"}

    @pytest.mark.asyncio
    async def test_environment_substitution(self, runner, app, monkeypatch):
        """Unknown saved names fall back to environment variables."""
        monkeypatch.setenv("API_KEY", "secret")

        await run_steps(
            runner,
            {
                "action": "request",
                "method": "GET",
                "url": "/orders/42",
                "headers": {"X-Api-Key": "${API_KEY}"},
            },
        )

        assert app.requests[0].headers["x-api-key"] == "secret"

    @pytest.mark.asyncio
    async def test_text_responses_kept_as_text(self, runner):
        """Non-JSON bodies are stored as text."""
        await run_steps(runner, {"action": "request", "method": "GET", "url": "/health"})

        assert runner.last_response["body"] == "ok"
        assert runner.last_response["status_text"] == "OK"

    @pytest.mark.asyncio
    async def test_transport_error_fails_step(self, run_config):
        """Network errors fail the request step."""

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        runner = ApiRunner(run_config, transport=httpx.MockTransport(refuse))

        results = await run_steps(
            runner, {"action": "request", "method": "GET", "url": "https://down.test/x"}
        )

        assert results[0].status == StepStatus.FAILED
        assert "connection refused" in results[0].error


class TestJsonPathAssertions:
    """Test expectJsonPath."""

    @pytest.mark.asyncio
    async def test_value_and_contains(self, runner):
        """Values compare as JSON and contains compares text."""
        results = await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/orders/42"},
            {"action": "expectJsonPath", "path": "$.status", "value": "paid"},
            {"action": "expectJsonPath", "path": "$.items[0]", "value": {"qty": 2, "sku": "A-1"}},
            {"action": "expectJsonPath", "path": "customer.tags", "contains": "vip"},
            {"action": "expectJsonPath", "path": "$.id", "contains": "4"},
            {"action": "expectJsonPath", "path": "$.note", "value": None},
        )

        assert [r.status for r in results] == [StepStatus.PASSED] * 6

    @pytest.mark.asyncio
    async def test_failures(self, runner):
        """Mismatches, missing paths and missing substrings fail."""
        results = await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/orders/42"},
            {"action": "expectJsonPath", "path": "$.status", "value": "refunded"},
            {"action": "expectJsonPath", "path": "$.customer.email"},
            {"action": "expectJsonPath", "path": "$.customer.name", "contains": "Grace"},
            {"action": "expectJsonPath", "path": "$.id", "value": "42"},
        )

        assert results[1].error == 'Expected "$.status" to equal "refunded" but got "paid"'
        assert results[2].error == 'JSON path "$.customer.email" not found in response'
        assert results[3].error == (
            'Expected "$.customer.name" to contain "Grace" but got "Ada Lovelace"'
        )
        assert results[4].error == 'Expected "$.id" to equal "42" but got 42'


class TestRequestLog:
    """Test the per-flow request log."""

    @pytest.mark.asyncio
    async def test_log_written_on_stop(self, runner, run_config):
        """Requests are written to api-logs after the session."""
        await run_steps(
            runner,
            {"action": "request", "method": "GET", "url": "/orders/42"},
            {"action": "request", "method": "GET", "url": "/missing"},
        )

        path = Path(run_config.artifacts_dir) / "api-logs" / "Orders-API-api-log.json"
        entries = json.loads(path.read_text(encoding="utf-8"))
        assert [entry["url"] for entry in entries] == [
            "https://api.test/orders/42",
            "https://api.test/missing",
        ]
        assert entries[1]["response"]["status"] == 404

    @pytest.mark.asyncio
    async def test_no_log_without_requests(self, runner, run_config):
        """No file is written when no request was made."""
        await run_steps(runner, {"action": "expectStatus", "status": 200})

        assert not (Path(run_config.artifacts_dir) / "api-logs").exists()

    @pytest.mark.asyncio
    async def test_state_reset_between_sessions(self, runner):
        """A new session forgets previous responses."""
        await run_steps(runner, {"action": "request", "method": "GET", "url": "/orders/42"})
        results = await run_steps(runner, {"action": "expectStatus", "status": 200})

        assert results[0].error == NO_RESPONSE_MESSAGE
