from contextlib import asynccontextmanager

from fastapi import FastAPI

from job_intake.core.config import settings
from job_intake.core.correlation import CorrelationIdMiddleware
from job_intake.core.database import close_database, db_manager, init_database
from job_intake.core.exceptions import register_exception_handlers
from job_intake.core.metrics import MetricsMiddleware
from job_intake.core.security_headers import SecurityHeadersMiddleware
from job_intake.dependencies import build_services
from job_intake.log.logging import logger

from job_intake.routers.v1 import router as v1_router
from job_intake.routers.healthcheck_router import router as healthcheck_router
from job_intake.routers.metrics_router import router as metrics_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB and build the service graph; release the client on exit."""
    logger.info("Starting Job Intake Service", environment=settings.environment)

    try:
        await init_database()
    except Exception as e:
        logger.error("MongoDB unavailable at startup", error=str(e))
        # Keep serving; readiness reports the outage and creates the indexes later

    app.state.services = build_services(db_manager.database, db_manager.resume_bucket())

    yield

    logger.info("Stopping Job Intake Service")
    await close_database()


app = FastAPI(
    title="Job Intake Service",
    description="Job applications with resume storage and recruiter review",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Outermost last: correlation, then metrics, then security headers
app.add_middleware(SecurityHeadersMiddleware)
if settings.metrics_enabled:
    app.add_middleware(MetricsMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.get("/")
async def root():
    return {"message": "Job Intake Service is running!", "api_version": "v1"}


app.include_router(v1_router)
app.include_router(healthcheck_router)
app.include_router(metrics_router)
