"""
FastAPI main application for the tiered time-series API.

This module initializes the FastAPI app, builds the query coordinator and
security token cache in the lifespan, maps errors to status codes and
includes the API routers.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.errors import APIError
from api.schemas.common import ErrorResponse, HealthCheckResponse
from tiered_timeseries.config import ConfigurationError, get_settings
from tiered_timeseries.ingestion.credentials import CredentialCache, CredentialError
from tiered_timeseries.observability.metrics import (
    CONTENT_TYPE_LATEST,
    api_request_duration,
    get_metrics,
)
from tiered_timeseries.query import QueryCoordinator
from tiered_timeseries.storage.interfaces import StorageError

logger = logging.getLogger(__name__)


# Application state
class AppState:
    """Application state container."""

    def __init__(self):
        self.coordinator: Optional[QueryCoordinator] = None
        self.token_cache: Optional[CredentialCache] = None
        self.config_error: Optional[Exception] = None
        self.started_at: Optional[datetime] = None


app_state = AppState()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    Builds the query coordinator and the security token cache once. When
    required settings are missing the API still starts, and every data
    request is answered with a configuration error.
    """
    from tiered_timeseries.storage import AWSClientFactory, SSMParameterStore

    logger.info("Starting tiered time-series API...")
    app_state.started_at = datetime.now(timezone.utc)

    try:
        settings = get_settings().require_api()
        clients = AWSClientFactory.from_settings(settings)

        app_state.coordinator = QueryCoordinator.from_settings(settings, clients=clients)
        app_state.token_cache = CredentialCache(
            value=settings.security_token,
            parameter_name=settings.security_token_parameter,
            parameter_store=SSMParameterStore(clients),
            ttl_seconds=settings.credential_ttl_seconds,
            name="API security token",
        )
        app_state.config_error = None
        logger.info("Query coordinator initialized")

    except ConfigurationError as e:
        app_state.config_error = e
        logger.error(f"API started without required configuration: {e}")

    yield

    logger.info("Shutting down tiered time-series API...")
    app_state.coordinator = None
    app_state.token_cache = None


# Create FastAPI application
app = FastAPI(
    title="Tiered Time-Series API",
    description="""
    ## Tiered Time-Series API

    Serves time-series samples for an identifier from two storage tiers:
    a time-partitioned store for past samples and an expiring key-value
    store for samples dated in the future.

    ### Authentication

    Data endpoints require the shared secret in the `x-security-token` header.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# Request timing

@app.middleware("http")
async def track_request_duration(request: Request, call_next):
    """Observe request durations on the API histogram."""
    start_time = time.perf_counter()
    response = await call_next(request)
    api_request_duration.labels(
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
    ).observe(time.perf_counter() - start_time)
    return response


# Exception handlers

def _error_response(status_code: int, error: str, detail: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            code=code,
            timestamp=_utc_timestamp(),
        ).model_dump(),
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Handle caller errors (validation, authentication)."""
    logger.info(f"Rejected request to {request.url.path}: {exc.detail}")
    return _error_response(exc.status_code, exc.error, exc.detail, exc.code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle missing or malformed request parameters."""
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation Error",
        str(exc),
        "VALIDATION_ERROR",
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    return _error_response(
        exc.status_code, str(exc.detail), str(exc.detail), f"HTTP_{exc.status_code}"
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle missing server configuration."""
    logger.error(f"Configuration error: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Configuration Error",
        str(exc),
        "CONFIGURATION_ERROR",
    )


@app.exception_handler(CredentialError)
async def credential_error_handler(request: Request, exc: CredentialError):
    """Handle a security token that cannot be resolved."""
    logger.error(f"Credential error: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Configuration Error",
        str(exc),
        "CONFIGURATION_ERROR",
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Handle backend store failures."""
    logger.error(f"Storage error: {exc}")
    return _error_response(
        status.HTTP_502_BAD_GATEWAY,
        "Storage Error",
        str(exc),
        "STORAGE_ERROR",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred",
        "INTERNAL_ERROR",
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> Dict[str, Any]:
    """
    API root endpoint providing basic information.
    """
    return {
        "name": "Tiered Time-Series API",
        "version": __version__,
        "status": "operational" if app_state.config_error is None else "misconfigured",
        "docs": "/docs",
        "endpoints": {
            "timeseries": "/timeSeries-data",
            "health": "/health",
            "metrics": "/metrics",
        },
    }


@app.get("/health", tags=["Root"], response_model=HealthCheckResponse)
async def health() -> HealthCheckResponse:
    """Liveness check; reports whether the query path is configured."""
    configured = app_state.config_error is None
    return HealthCheckResponse(
        status="healthy" if configured and app_state.coordinator else "degraded",
        version=__version__,
        timestamp=_utc_timestamp(),
        services={
            "configuration": configured,
            "query_coordinator": app_state.coordinator is not None,
        },
    )


@app.get("/metrics", tags=["Root"], include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


# Include routers
from api.routers import timeseries  # noqa: E402

app.include_router(timeseries.router)


if __name__ == "__main__":
    import uvicorn

    from tiered_timeseries.observability.logging import setup_logging

    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(
        "api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        log_level="info",
    )
