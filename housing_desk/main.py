"""
Housing Desk Backend - Main Application Entry Point
Application Factory Pattern with ORJSONResponse.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import ORJSONResponse

from housing_desk import __version__
from housing_desk.core.config import settings
from housing_desk.core.database import close_db, init_db
from housing_desk.core.exceptions import register_exception_handlers
from housing_desk.core.logging import bind_context, clear_context, configure_logging, get_logger
from housing_desk.core.metrics import MetricsMiddleware
from housing_desk.core.sentry import init_sentry

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting Housing Desk",
        environment=settings.environment,
        debug=settings.debug,
    )

    # Create tables directly (local runs); deployments use alembic
    if settings.run_db_init:
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Shutting down Housing Desk")
    await close_db()


# OpenAPI Tags Metadata
TAGS_METADATA = [
    {
        "name": "Auth",
        "description": "Login with login/password, JWT bearer tokens, user management.",
    },
    {
        "name": "Requests",
        "description": """
**Service requests**

## Lifecycle
```
new -> assigned -> accepted -> in_progress -> pending_approval -> completed
                                   ^                  |
                                   +---- rejected ----+
```
Any unfinished request can be cancelled; executors may decline back to `new`.
Illegal moves answer `409 INVALID_TRANSITION`.
        """,
    },
    {
        "name": "Reschedule",
        "description": "Visit time proposals between resident and executor. One pending proposal per request.",
    },
    {
        "name": "Executors",
        "description": "Specialist profiles, availability and statistics.",
    },
    {
        "name": "Marketplace",
        "description": """
**Marketplace orders**

`new -> confirmed -> preparing -> ready -> delivering -> delivered`
Couriers drive the last two steps.
        """,
    },
    {"name": "Notifications", "description": "In-app notifications."},
    {"name": "Activity", "description": "Staff activity feed."},
    {"name": "Dashboard", "description": "Summary counters for staff."},
    {
        "name": "SSE",
        "description": """
**Server-Sent Events**

```javascript
const source = new EventSource('/api/v1/sse/events');
source.onmessage = (event) => console.log(JSON.parse(event.data));
```
Event types: `request.updated`, `reschedule.updated`, `order.updated`, `heartbeat`.
        """,
    },
    {"name": "Health", "description": "Liveness and Prometheus metrics."},
]


API_DESCRIPTION = """
# Housing Desk

Maintenance dashboard backend for a housing management company.

Residents file service requests, dispatchers assign them to specialist
executors, executors work them through a timed lifecycle, and couriers
deliver marketplace orders.

## Error Format

```json
{
  "error": {
    "code": "INVALID_TRANSITION",
    "message": "Request cannot move from 'new' to 'in_progress'",
    "details": {"current_status": "new", "target_status": "in_progress", "allowed_from": ["accepted", "assigned"]},
    "request_id": "…",
    "timestamp": "2024-01-15T10:30:00Z",
    "path": "/api/v1/requests/…/start",
    "method": "POST"
  }
}
```
"""


def create_application() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title="Housing Desk API",
        summary="Maintenance requests, executors and marketplace deliveries",
        description=API_DESCRIPTION,
        version=settings.app_version,
        openapi_url="/openapi.json",
        openapi_tags=TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,
            "docExpansion": "list",
            "filter": True,
            "persistAuthorization": True,
        },
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            summary=app.summary,
            description=app.description,
            routes=app.routes,
            tags=TAGS_METADATA,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Token from `POST /api/v1/auth/login`.",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    init_sentry()

    if settings.prometheus_enabled:
        app.add_middleware(MetricsMiddleware)

    register_exception_handlers(app)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """Bind a request id to every log line and echo it back."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        clear_context()
        bind_context(request_id=request_id, path=request.url.path, method=request.method)
        try:
            response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    logger.info("CORS configured", origins=settings.cors_origins_list)

    _include_routers(app)

    @app.get("/health", tags=["Health"], response_class=ORJSONResponse)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "housing-desk"}

    @app.get("/", tags=["Health"], response_class=ORJSONResponse)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": "Housing Desk",
            "version": __version__,
            "docs": "/docs" if settings.debug else "disabled",
        }

    return app


def _include_routers(app: FastAPI) -> None:
    """
    Include all module routers under the versioned prefix.
    Metrics stay at the root for Prometheus.
    """
    from housing_desk.core.metrics import router as metrics_router
    from housing_desk.modules.activity.router import router as activity_router
    from housing_desk.modules.auth.router import router as auth_router
    from housing_desk.modules.dashboard.router import router as dashboard_router
    from housing_desk.modules.executors.router import router as executors_router
    from housing_desk.modules.marketplace.router import router as marketplace_router
    from housing_desk.modules.notifications.router import router as notifications_router
    from housing_desk.modules.requests.router import router as requests_router
    from housing_desk.modules.reschedule.router import router as reschedule_router
    from housing_desk.modules.sse.router import router as sse_router

    api_v1_prefix = settings.api_v1_str

    routers = [
        (auth_router, "auth"),
        (requests_router, "requests"),
        (reschedule_router, "reschedule"),
        (executors_router, "executors"),
        (marketplace_router, "marketplace"),
        (notifications_router, "notifications"),
        (activity_router, "activity"),
        (dashboard_router, "dashboard"),
        (sse_router, "sse"),
    ]

    for router, _name in routers:
        app.include_router(router, prefix=api_v1_prefix)

    if settings.prometheus_enabled:
        app.include_router(metrics_router)

    logger.info(
        "Routers registered",
        modules=[name for _, name in routers],
        api_prefix=api_v1_prefix,
    )


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "housing_desk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
