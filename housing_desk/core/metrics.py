"""
Prometheus Metrics - Application Monitoring

Exposes metrics at /metrics endpoint for Prometheus scraping.
"""
import time

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from housing_desk.core.config import settings

# === Application Info ===
APP_INFO = Info("housing_desk_app", "Housing Desk application info")
APP_INFO.info({
    "version": settings.app_version,
    "environment": settings.environment,
})

# === Request Metrics ===
REQUEST_COUNT = Counter(
    "housing_desk_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "housing_desk_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# === Business Metrics ===
REQUEST_TRANSITIONS = Counter(
    "housing_desk_request_transitions_total",
    "Service request status transitions",
    ["from_status", "to_status"],
)

RESCHEDULE_EVENTS = Counter(
    "housing_desk_reschedule_events_total",
    "Reschedule proposals by outcome",
    ["outcome"],
)

MARKETPLACE_ORDER_TRANSITIONS = Counter(
    "housing_desk_marketplace_order_transitions_total",
    "Marketplace order status transitions",
    ["to_status"],
)

# === SSE Metrics ===
SSE_CONNECTIONS = Gauge(
    "housing_desk_sse_connections",
    "Active SSE connections",
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    async def dispatch(self, request: Request, call_next) -> StarletteResponse:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Route template keeps IDs out of the label set
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        REQUEST_LATENCY.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# === Metrics Router ===
router = APIRouter(tags=["Health"])


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# === Helper Functions ===

def record_request_transition(from_status: str, to_status: str) -> None:
    """Record a service request status change."""
    REQUEST_TRANSITIONS.labels(from_status=from_status, to_status=to_status).inc()


def record_reschedule(outcome: str) -> None:
    """Record a reschedule proposal event (proposed/accepted/rejected/expired)."""
    RESCHEDULE_EVENTS.labels(outcome=outcome).inc()


def record_order_transition(to_status: str) -> None:
    """Record a marketplace order status change."""
    MARKETPLACE_ORDER_TRANSITIONS.labels(to_status=to_status).inc()


def sse_connection_opened() -> None:
    """Record SSE connection opened."""
    SSE_CONNECTIONS.inc()


def sse_connection_closed() -> None:
    """Record SSE connection closed."""
    SSE_CONNECTIONS.dec()
