"""
Request correlation.

Each request gets an ID, taken from the caller's ``X-Correlation-ID`` header
when it looks sane and generated otherwise. The ID is returned in the
response headers, attached to every log line written while the request is
handled, and copied into error bodies and audit entries.
"""

import re
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from job_intake.log.logging import logger

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Caller supplied IDs end up in headers and logs
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_current_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """The correlation ID of the request being handled, if any."""
    return _current_id.get()


def resolve_correlation_id(header_value: str | None) -> str:
    """Reuse a well-formed incoming ID, otherwise mint a new UUID4."""
    if header_value and _ACCEPTED_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Binds a correlation ID to the request context and logs the request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = _current_id.set(correlation_id)
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        try:
            with logger.contextualize(correlation_id=correlation_id):
                try:
                    response = await call_next(request)
                except Exception as e:
                    logger.error(
                        "Request failed",
                        method=request.method,
                        path=request.url.path,
                        error=str(e),
                        event_type="request_error",
                    )
                    raise

                logger.info(
                    "Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    event_type="request_complete",
                )
        finally:
            _current_id.reset(token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response
