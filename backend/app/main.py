"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from app.core.cache import ResponseCache
from app.core.config import settings
from app.core.database import engine
from app.core.logging import setup_logging
from app.core.metrics import get_metrics, get_metrics_content_type, set_app_info
from app.core.middleware import (
    CorrelationIdMiddleware,
    MetricsMiddleware,
    RequestLoggingMiddleware,
)
from app.core.tracing import setup_tracing, shutdown_tracing
from app.modules.assignment.router import router as assignment_router
from app.modules.file.router import router as file_router

ENVIRONMENT = "development" if settings.DEBUG else "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build per-process state on startup and release it on shutdown."""
    app.state.response_cache = ResponseCache(settings.CACHE_MAX_ENTRIES)
    yield
    app.state.response_cache.clear()
    shutdown_tracing()
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Document Desk Admin API

Back office for the document-processing desk: distributes paid customer
files across support agents and serves the admin dashboard.

### Features

* **Assignment** - Workload-balanced or round-robin auto-assignment, manual assignment, unassignment
* **Background sweep** - Periodic assignment of paid files nobody has picked up
* **Files** - Filterable, paginated file listing

### Authentication

All `/admin` endpoints require an admin JWT, sent as a Bearer token or the
`admin_token` cookie. The background sweep uses its own shared token.

```
Authorization: Bearer <admin_token>
```
    """,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check and metrics endpoints",
        },
        {
            "name": "assignment",
            "description": "File assignment - statistics, auto/manual assignment, unassignment, background sweep",
        },
        {
            "name": "files",
            "description": "Admin file listing",
        },
    ],
)

setup_logging(
    level="INFO" if not settings.DEBUG else "DEBUG",
    json_format=True,
    include_stack_trace=True,
)

setup_tracing(
    service_name=settings.PROJECT_NAME,
    service_version=settings.VERSION,
    environment=ENVIRONMENT,
    otlp_endpoint=settings.OTLP_ENDPOINT or None,
    enable_console_export=settings.DEBUG,
)

set_app_info(version=settings.VERSION, environment=ENVIRONMENT)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware)


def custom_openapi() -> dict:
    """Generate custom OpenAPI schema."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=app.openapi_tags,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Admin session token",
        },
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", tags=["health"], include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Include routers
app.include_router(assignment_router, prefix=settings.API_V1_PREFIX)
app.include_router(file_router, prefix=settings.API_V1_PREFIX)
