"""
API v1 router aggregation.

This module aggregates all v1 API endpoints under the /v1 prefix.
"""

from fastapi import APIRouter

from job_intake.routers.v1.applications import router as applications_router

router = APIRouter(prefix="/v1", tags=["v1"])

router.include_router(applications_router)
