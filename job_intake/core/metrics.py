"""
Prometheus metrics.

HTTP traffic is labelled by route template (``/v1/applications/{application_id}/status``)
rather than raw path, so ids never create new series.
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

from job_intake.core.config import settings

PREFIX = "job_intake"
UNMATCHED_ROUTE = "<unmatched>"

SERVICE_INFO = Info(f"{PREFIX}_service", "Job intake service build information")
SERVICE_INFO.info({"version": "1.0.0", "environment": settings.environment})

# HTTP
HTTP_REQUEST_DURATION = Histogram(
    f"{PREFIX}_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route", "status_code"],
    buckets=(0.005, 0.025, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
HTTP_REQUESTS = Counter(
    f"{PREFIX}_http_requests_total", "HTTP requests handled", ["method", "route", "status_code"]
)
HTTP_IN_FLIGHT = Gauge(f"{PREFIX}_http_requests_in_flight", "HTTP requests being handled")

# Applications
APPLICATIONS_SUBMITTED = Counter(
    f"{PREFIX}_applications_submitted_total",
    "Submission attempts by outcome (created, rejected, failed)",
    ["outcome"],
)
APPLICATION_STATUS_CHANGES = Counter(
    f"{PREFIX}_application_status_changes_total", "Review decisions by new status", ["status"]
)
AUTHORIZATION_DENIALS = Counter(
    f"{PREFIX}_authorization_denials_total", "Denied operations", ["operation", "role"]
)

# Resumes
RESUME_BYTES_STORED = Counter(f"{PREFIX}_resume_bytes_stored_total", "Resume bytes written")
RESUME_SIZE = Histogram(
    f"{PREFIX}_resume_size_bytes",
    "Size of stored resumes",
    buckets=(16 * 1024, 64 * 1024, 256 * 1024, 1024 * 1024, 4 * 1024 * 1024, 16 * 1024 * 1024),
)
RESUME_DOWNLOADS = Counter(
    f"{PREFIX}_resume_downloads_total", "Resume downloads by outcome (completed, aborted)", ["outcome"]
)


def route_label(request: Request) -> str:
    """Template of the matched route; only known after routing."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Records latency and count of every request except the scrape itself.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        status_code = "500"
        started = time.perf_counter()
        HTTP_IN_FLIGHT.inc()
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            HTTP_IN_FLIGHT.dec()
            labels = {"method": request.method, "route": route_label(request), "status_code": status_code}
            HTTP_REQUEST_DURATION.labels(**labels).observe(time.perf_counter() - started)
            HTTP_REQUESTS.labels(**labels).inc()


def record_application_submitted(outcome: str = "created"):
    APPLICATIONS_SUBMITTED.labels(outcome=outcome).inc()


def record_resume_stored(size_bytes: int):
    RESUME_BYTES_STORED.inc(size_bytes)
    RESUME_SIZE.observe(size_bytes)


def record_resume_download(outcome: str):
    RESUME_DOWNLOADS.labels(outcome=outcome).inc()


def record_status_change(status: str):
    APPLICATION_STATUS_CHANGES.labels(status=status).inc()


def record_authorization_denied(operation: str, role: str):
    AUTHORIZATION_DENIALS.labels(operation=operation, role=role).inc()


def get_metrics() -> bytes:
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
