"""
Prometheus scrape endpoint.
"""
from fastapi import APIRouter, HTTPException, Response

from job_intake.core.config import settings
from job_intake.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Request, submission, resume and authorization metrics in Prometheus text format.",
    response_class=Response,
    include_in_schema=False,
)
async def metrics():
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics are disabled")
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
