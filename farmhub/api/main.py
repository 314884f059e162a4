"""
FastAPI application for FarmHub.

Main entry point for the HTTP API, providing:
- Equipment, booking and maintenance endpoints
- Supply marketplace and order endpoints
- Server-Sent Events notification stream
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from farmhub import __version__
from farmhub.api.booking_routes import router as booking_router
from farmhub.api.dependencies import init_notifications, shutdown_notifications
from farmhub.api.equipment_routes import router as equipment_router
from farmhub.api.maintenance_routes import router as maintenance_router
from farmhub.api.middleware import RequestLoggingMiddleware, get_caller, get_request_id
from farmhub.api.models import HealthResponse
from farmhub.api.supply_routes import router as supply_router
from farmhub.config import get_settings
from farmhub.database import check_connection, init_db
from farmhub.errors import FarmHubError
from farmhub.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    logger.info("Starting FarmHub API")
    if settings.is_development:
        init_db()
    init_notifications(settings)
    logger.info("FarmHub API started")

    yield

    # Shutdown
    logger.info("Shutting down FarmHub API")
    await shutdown_notifications()


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="FarmHub API",
    description="""
# FarmHub API

Equipment rental, maintenance scheduling and supply marketplace.

## Identity

Authentication is handled upstream. Every authenticated call carries the
user id in the `X-User-ID` header (or a `user_id` cookie).

## Error Format

All errors return `{"success": false, "error": <category>, "message": <text>}`.

- **400** - Invalid input, invalid transition, insufficient stock
- **401** - No user id
- **403** - Caller is not the owner, requester or supplier
- **404** - Referenced record not found
- **409** - Date conflict or maintenance conflict
- **500** - Server error
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(equipment_router)
app.include_router(booking_router)
app.include_router(maintenance_router)
app.include_router(supply_router)


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_body(error: str, message: str, details=None) -> dict:
    body = {"success": False, "error": error, "message": message}
    if details:
        body["details"] = details
    return body


@app.exception_handler(FarmHubError)
async def farmhub_exception_handler(request: Request, exc: FarmHubError):
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"[{get_request_id()}] {exc.error_type} for {get_caller()}: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_type, exc.message),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads are reported as 400 like any other invalid input."""
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("validation_error", "Invalid request", details),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Store failures never leak their messages to the client."""
    logger.error(f"[{get_request_id()}] Database error for {get_caller()}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("internal_error", "A database error occurred"),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("internal_error", "An unexpected error occurred"),
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
async def health_check() -> HealthResponse:
    """
    Check API health status.

    Returns:
        Health status including database connectivity and notification backend
    """
    database_connected = check_connection()

    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=__version__,
        database_connected=database_connected,
        notification_backend=get_settings().notification_backend,
    )


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: Optional[bool] = None):
    """Run the API server with Uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "farmhub.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.api_reload if reload is None else reload,
    )


if __name__ == "__main__":
    run_server()
