"""Prometheus metrics for the syllable analysis engine."""

from contextlib import contextmanager
from time import perf_counter
from typing import Iterator

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# Request coordinator metrics
requests_total = Counter(
    "cadence_requests_total",
    "Line analysis requests by outcome",
    ["outcome"],
)
pending_requests = Gauge(
    "cadence_pending_requests",
    "Requests waiting for a channel response",
)

# Channel health metrics
channel_failures_total = Counter(
    "cadence_channel_failures_total",
    "Fatal background channel failures",
)
channel_restarts_total = Counter(
    "cadence_channel_restarts_total",
    "Background channel restarts after a failure",
)
fallback_active = Gauge(
    "cadence_fallback_active",
    "1 when analysis runs synchronously in-process after repeated channel failures",
)

# Analysis metrics
line_analysis_seconds = Histogram(
    "cadence_line_analysis_seconds",
    "Line Analyzer runtime per line",
    buckets=(0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.05),
)

# API metrics
api_requests_total = Counter(
    "cadence_api_requests_total",
    "HTTP requests by endpoint and status",
    ["endpoint", "status"],
)


def record_request(outcome: str) -> None:
    """Count a finished request (resolved, superseded, failed, timeout, fallback, empty)."""
    requests_total.labels(outcome=outcome).inc()


@contextmanager
def time_analysis() -> Iterator[None]:
    """Observe the wrapped Line Analyzer call in the runtime histogram."""
    started = perf_counter()
    try:
        yield
    finally:
        line_analysis_seconds.observe(perf_counter() - started)


def get_metrics_endpoint():
    """Get FastAPI endpoint for Prometheus metrics."""

    async def metrics_endpoint():
        """Return Prometheus metrics."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    return metrics_endpoint
