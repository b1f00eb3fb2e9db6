"""
Prometheus metrics for the schedule service.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Schedule upsert outcome counter (result)
- Retention sweep counters

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# result: created, updated
schedule_upserts_total = Counter(
    "schedule_upserts_total",
    "Schedule upsert outcomes",
    labelnames=["result"]
)

# result: ok, error
retention_sweeps_total = Counter(
    "retention_sweeps_total",
    "Message retention sweeps by outcome",
    labelnames=["result"]
)

retention_purged_messages_total = Counter(
    "retention_purged_messages_total",
    "Messages deleted by the retention sweeper"
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_schedule_upsert(result: str) -> None:
    schedule_upserts_total.labels(result=result).inc()


def record_retention_sweep(result: str, purged: int = 0) -> None:
    """
    Record one retention sweep.

    Args:
        result: "ok" or "error"
        purged: Number of messages deleted by the sweep
    """
    retention_sweeps_total.labels(result=result).inc()
    if purged:
        retention_purged_messages_total.inc(purged)


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
