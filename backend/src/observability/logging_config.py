"""Structured JSON logging configuration.

One JSON object per line on stdout. Workflow code attaches identifiers through
``extra=`` (record_id, user_id, actor_id, slot, ...) and the formatter copies
the known ones into the output.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .request_id import get_request_id

# Extra attributes copied from a LogRecord into the JSON payload
EXTRA_FIELDS = (
    "record_id",
    "user_id",
    "actor_id",
    "status",
    "outcome",
    "slot",
    "storage_path",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_type",
    "task_id",
)

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"

# Third-party loggers that flood INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "celery.redirected")


def _json_safe(value):
    if isinstance(value, (bool, int, float)):
        return value
    return str(value)


class RequestIDFilter(logging.Filter):
    """Stamp each record with the request (or task) id bound to the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single-line JSON document."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        payload.update(
            (field, _json_safe(getattr(record, field)))
            for field in EXTRA_FIELDS
            if getattr(record, field, None) is not None
        )

        if record.exc_info:
            payload["error"] = str(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once (API startup and Celery worker import both do);
    existing root handlers are replaced.
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
