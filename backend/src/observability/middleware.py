"""FastAPI middleware for request correlation and access logging."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import (
    REQUEST_ID_HEADER,
    generate_request_id,
    reset_request_id,
    set_request_id,
)
from .logging_config import get_logger

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind an X-Request-ID to every request and write one access log line.

    A caller-supplied id is reused so a request can be followed across
    services; otherwise a new one is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        token = set_request_id(request_id)
        started = time.perf_counter()
        extra = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception as e:
            extra.update(error_type=type(e).__name__, duration_ms=_elapsed_ms(started))
            logger.error(f"{request.method} {request.url.path} raised", extra=extra, exc_info=True)
            raise
        else:
            extra.update(status_code=response.status_code, duration_ms=_elapsed_ms(started))
            logger.info(f"{request.method} {request.url.path} -> {response.status_code}", extra=extra)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            reset_request_id(token)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
