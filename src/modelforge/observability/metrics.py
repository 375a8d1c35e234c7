"""Prometheus metrics for the ModelForge FastAPI backend.

Request latency is recorded by an HTTP middleware; the orchestration pipeline
and completion client increment their own counters.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

REQUEST_LATENCY = Histogram(
    "modelforge_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    # Completion round trips dominate; keep buckets wide.
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

ORCHESTRATION_RUNS = Counter(
    "modelforge_orchestration_runs_total",
    "Orchestration runs by terminal outcome",
    labelnames=("outcome",),
)

COMPLETION_ATTEMPTS = Counter(
    "modelforge_completion_attempts_total",
    "Completion provider attempts by result",
    labelnames=("result",),
)


def sanitize_path(path: str) -> str:
    """Reduce high-cardinality paths (e.g. /projects/{id}/files) to the top segment."""
    if not path:
        return "/"
    segs = path.split("?")[0].split("/")
    if len(segs) > 2 and segs[1] == "api":
        return "/api/" + segs[2]
    if len(segs) > 1:
        return "/" + segs[1]
    return path


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
