"""
Prometheus metrics for the message store API.

This module provides:
- HTTP request counter (method, path, status)
- Message operation outcome counter (operation, result)
- Request latency histogram (method, path)

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

# operation: create, update, delete, get, list
# result: success, bad_request, validation_error, not_found, conflict
message_operations_total = Counter(
    "message_operations_total",
    "Total message operation outcomes",
    labelnames=["operation", "result"]
)

# Using default buckets: .005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0, 7.5, 10.0
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# Label for requests that matched no route (404s, probes for random paths)
UNMATCHED_ROUTE = "unmatched"


# =============================================================================
# Helper Functions
# =============================================================================

def route_label(scope: dict) -> str:
    """
    Path label for a handled request: the matched route template.

    Using the template (e.g. /api/v1/organizations/{organization_id}/messages)
    keeps label cardinality bounded whatever ids, valid or not, appear in the URL.
    """
    path_format = getattr(scope.get("route"), "path_format", None)
    return path_format or UNMATCHED_ROUTE


def record_http_request(method: str, route: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        route: Route template from route_label
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    http_requests_total.labels(
        method=method,
        path=route,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=route
    ).observe(latency_seconds)


def record_message_operation(operation: str, result: str) -> None:
    """Record the outcome of a message operation."""
    message_operations_total.labels(operation=operation, result=result).inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
