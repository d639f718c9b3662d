"""
Response hardening headers.

Resume downloads carry client supplied content types, so browsers must not
sniff them, render them inline in frames, or cache them.
"""
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from job_intake.core.config import settings

FIXED_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; sandbox",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Sets ``FIXED_HEADERS`` on every response, ``Cache-Control: no-store``
    unless the route chose otherwise, and HSTS in production.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(FIXED_HEADERS)
        response.headers.setdefault("Cache-Control", "no-store")
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
