"""Request ID management for request correlation.

The ID lives in a ContextVar so it follows a request across awaits and into
the worker threads FastAPI runs sync endpoints on. Celery tasks set their own
ID (the task id) so sweeper log lines correlate too.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> Token:
    """Bind a request ID to the current context.

    Returns:
        Token: pass to reset_request_id() when the unit of work ends
    """
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)
