"""Prometheus HTTP metrics for the league billing API."""
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HTTP_LABELS = ["method", "path", "status_code"]

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "Time spent handling league billing API requests",
    labelnames=HTTP_LABELS,
    # Checkout waits on the payment gateway, so keep a few multi-second buckets
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

api_requests_total = Counter(
    "api_requests_total",
    "League billing API requests by route and status",
    labelnames=HTTP_LABELS,
)

api_errors_total = Counter(
    "api_errors_total",
    "Requests that raised instead of returning a response",
    labelnames=["method", "path", "error_type"],
)


def route_path(request: Request) -> str:
    """Route template (e.g. /v1/leagues/{league_id}) so ids don't explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records latency and counts per route template. The scrape endpoint itself is not measured."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            api_errors_total.labels(request.method, route_path(request), type(exc).__name__).inc()
            raise

        labels = (request.method, route_path(request), str(response.status_code))
        api_request_duration_seconds.labels(*labels).observe(time.perf_counter() - started)
        api_requests_total.labels(*labels).inc()
        return response
