"""Observability module for the onboarding portal.

Provides structured logging, request correlation, workflow metrics and
health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    applications_submitted_total,
    applications_resubmitted_total,
    applications_deleted_total,
    decisions_total,
    promotions_total,
    storage_failures_total,
    retention_purged_total,
    retention_sweep_duration_seconds,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth, HealthReport
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "applications_submitted_total",
    "applications_resubmitted_total",
    "applications_deleted_total",
    "decisions_total",
    "promotions_total",
    "storage_failures_total",
    "retention_purged_total",
    "retention_sweep_duration_seconds",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    "HealthReport",
    # Middleware
    "RequestIDMiddleware",
]
