"""
Service wiring and FastAPI dependency providers.

Services are built once at startup (see ``main.lifespan``) and stored on
``app.state``. Routes receive them through the ``get_*`` providers, which
tests replace with ``app.dependency_overrides``.
"""
from dataclasses import dataclass

from fastapi import Request

from job_intake.core.config import settings
from job_intake.services.application_repository import ApplicationRepository
from job_intake.services.application_service import ApplicationService
from job_intake.services.authorization import AuthorizationGate
from job_intake.services.blob_store import GridFSBlobStore
from job_intake.services.job_directory import JobDirectory
from job_intake.services.status_workflow import StatusWorkflow
from job_intake.services.submission_service import SubmissionService


@dataclass
class Services:
    blob_store: GridFSBlobStore
    repository: ApplicationRepository
    jobs: JobDirectory
    gate: AuthorizationGate
    workflow: StatusWorkflow
    submission: SubmissionService
    applications: ApplicationService


def build_services(database, resume_bucket) -> Services:
    """
    Construct every service from a database handle and the resume bucket.
    """
    blob_store = GridFSBlobStore(resume_bucket)
    repository = ApplicationRepository(
        applications=database[settings.applications_collection],
        jobs=database[settings.jobs_collection],
        users=database[settings.users_collection],
    )
    jobs = JobDirectory(database[settings.jobs_collection])
    gate = AuthorizationGate()
    workflow = StatusWorkflow(repository, jobs, gate)

    return Services(
        blob_store=blob_store,
        repository=repository,
        jobs=jobs,
        gate=gate,
        workflow=workflow,
        submission=SubmissionService(blob_store, repository, jobs, gate),
        applications=ApplicationService(repository, jobs, blob_store, gate, workflow),
    )


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.services.submission


def get_application_service(request: Request) -> ApplicationService:
    return request.app.state.services.applications
