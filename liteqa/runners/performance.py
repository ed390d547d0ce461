"""
Performance runner measuring API response times over repeated requests.
"""

import json
import math
import time
from typing import Dict, List, Optional

import httpx

from liteqa.core.types import ApiPerformanceStep, RunnerType
from liteqa.error_handling.exceptions import StepExecutionError
from liteqa.monitoring.logger import log_performance_metric
from liteqa.runners.base import BaseRunner, Executor


def percentile(sorted_times: List[float], fraction: float) -> float:
    """Value at ``floor(n * fraction)``; falls back to the maximum past the end."""
    if not sorted_times:
        return 0.0
    index = math.floor(len(sorted_times) * fraction)
    if index < len(sorted_times):
        return sorted_times[index]
    return sorted_times[-1]


def summarize(response_times: List[float], error_count: int, iterations: int) -> Dict[str, float]:
    """Aggregate response times (ms) into the reported metric set."""
    ordered = sorted(response_times)
    return {
        "iterations": float(iterations),
        "avgResponseTime": sum(ordered) / len(ordered) if ordered else 0.0,
        "minResponseTime": ordered[0] if ordered else 0.0,
        "maxResponseTime": ordered[-1] if ordered else 0.0,
        "p95": percentile(ordered, 0.95),
        "p99": percentile(ordered, 0.99),
        "errorRate": error_count / iterations * 100 if iterations else 0.0,
        "successCount": float(iterations - error_count),
        "errorCount": float(error_count),
    }


def threshold_failures(step: ApiPerformanceStep, metrics: Dict[str, float]) -> List[str]:
    """Return one message per exceeded threshold."""
    failures: List[str] = []
    thresholds = step.thresholds
    if thresholds is None:
        return failures

    if thresholds.avg_response_time is not None and metrics["avgResponseTime"] > thresholds.avg_response_time:
        failures.append(
            f"Avg response {metrics['avgResponseTime']:.0f}ms exceeds {thresholds.avg_response_time:g}ms"
        )
    if thresholds.p95 is not None and metrics["p95"] > thresholds.p95:
        failures.append(f"P95 {metrics['p95']:.0f}ms exceeds {thresholds.p95:g}ms")
    if thresholds.p99 is not None and metrics["p99"] > thresholds.p99:
        failures.append(f"P99 {metrics['p99']:.0f}ms exceeds {thresholds.p99:g}ms")
    if thresholds.error_rate is not None and metrics["errorRate"] > thresholds.error_rate:
        failures.append(
            f"Error rate {metrics['errorRate']:.1f}% exceeds {thresholds.error_rate:g}%"
        )
    return failures


class PerformanceRunner(BaseRunner):
    """Runs API performance measurements sequentially."""

    runner_type = RunnerType.PERFORMANCE

    def __init__(
        self,
        *args,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def build_executors(self) -> Dict[str, Executor]:
        return {"apiPerformance": self.execute_api_performance}

    async def start(self) -> None:
        self._client = httpx.AsyncClient(transport=self._transport)

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def execute_api_performance(self, step: ApiPerformanceStep) -> None:
        if self._client is None:
            raise StepExecutionError("HTTP client not initialized", action=step.action)

        url = self.resolve_url(step.url)
        content = json.dumps(step.body) if step.body is not None else None
        timeout = self.step_timeout(step) / 1000
        response_times: List[float] = []
        error_count = 0

        for _ in range(step.iterations):
            request_start = time.monotonic()
            try:
                response = await self._client.request(
                    step.method, url, headers=step.headers, content=content, timeout=timeout
                )
                if not response.is_success:
                    error_count += 1
            except httpx.HTTPError as e:
                self.logger.debug(f"Request to {url} failed: {e}")
                error_count += 1
            response_times.append((time.monotonic() - request_start) * 1000)

        metrics = summarize(response_times, error_count, step.iterations)
        self._step_metrics = metrics

        for name in ("avgResponseTime", "p95", "p99"):
            log_performance_metric(name, round(metrics[name], 2), context={"url": url})
        log_performance_metric("errorRate", metrics["errorRate"], unit="%", context={"url": url})

        failures = threshold_failures(step, metrics)
        if failures:
            raise StepExecutionError("; ".join(failures), action=step.action)
