"""Onboarding Portal Backend - Main FastAPI Application

Applicant document review and role promotion.

This module creates and configures the main FastAPI application, including:
- API routers (applicants, retention, audit)
- Middleware (request ID correlation, CORS)
- Exception handlers (workflow errors, validation, database)
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from dependencies import get_storage
from domain.applicants.errors import ApplicantWorkflowError, StorageFailure

# Observability
from observability.health import HealthStatus, check_object_storage_health
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router

# Domain Routers
from applicants.router import router as applicants_router
from retention.router import router as retention_router
from audit.router import router as audit_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

IS_PRODUCTION = settings.ENVIRONMENT == "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler (startup and shutdown logging)."""
    logger.info("Onboarding API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Retention window: {settings.APPLICANT_RETENTION_DAYS} days")

    storage = app.dependency_overrides.get(get_storage, get_storage)()
    probe = await check_object_storage_health(storage)
    if probe.status != HealthStatus.HEALTHY:
        # Uploads fail with 503 until the bucket is reachable
        logger.warning(f"Object storage not ready: {probe.message}")

    yield

    logger.info("Onboarding API shutting down...")


app = FastAPI(
    title="Onboarding Portal API",
    description="Applicant document review and role promotion",
    version="0.1.0",
    docs_url=None if IS_PRODUCTION else "/docs",
    redoc_url=None if IS_PRODUCTION else "/redoc",
    openapi_url=None if IS_PRODUCTION else "/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ApplicantWorkflowError)
async def workflow_exception_handler(
    request: Request,
    exc: ApplicantWorkflowError
) -> JSONResponse:
    """Translate workflow errors to their HTTP status.

    Body: {"detail": <message>, "error": <kind>}; storage failures also
    carry "retryable".
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.kind} on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code, "error_type": type(exc).__name__},
    )
    content = {"detail": exc.message, "error": exc.kind}
    if isinstance(exc, StorageFailure):
        content["retryable"] = exc.retryable
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle request parsing errors with field-level details."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": "Request validation failed",
            "details": exc.errors(),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "detail": "A database error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics, ready)
app.include_router(observability_router)

# Retention is registered before applicants so /applicants/retention/* wins
app.include_router(retention_router, prefix="/api/v1")
app.include_router(applicants_router, prefix="/api/v1")
app.include_router(audit_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "Onboarding Portal API",
        "version": "0.1.0",
        "status": "running",
        "docs": None if IS_PRODUCTION else "/docs",
    }


def create_app() -> FastAPI:
    """Return the configured application (tests and ASGI servers)."""
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
