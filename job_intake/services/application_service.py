"""
Application retrieval and review, as called by the HTTP layer.

Each operation looks up what the authorization decision needs, asks the
AuthorizationGate, and only then reads or writes.
"""
from job_intake.core.audit import audit_logger
from job_intake.core.exceptions import BlobNotFoundError, ResumeNotFoundError
from job_intake.log.logging import logger
from job_intake.models.actor import Actor
from job_intake.models.application import Application
from job_intake.services.application_repository import ApplicationRepository, PopulateField
from job_intake.services.authorization import AuthorizationGate
from job_intake.services.blob_store import BlobStream, GridFSBlobStore
from job_intake.services.job_directory import JobDirectory
from job_intake.services.status_workflow import StatusWorkflow, parse_status


class ApplicationService:
    """
    Read and review operations on applications.
    """

    def __init__(
        self,
        repository: ApplicationRepository,
        jobs: JobDirectory,
        blob_store: GridFSBlobStore,
        gate: AuthorizationGate,
        workflow: StatusWorkflow,
    ):
        self._repository = repository
        self._jobs = jobs
        self._blob_store = blob_store
        self._gate = gate
        self._workflow = workflow

    async def list_own(self, actor: Actor) -> list[Application]:
        """Applications submitted by the actor, with job summaries."""
        self._gate.ensure_can_view_own(actor)
        return await self._repository.find_by_applicant(actor.id, populate={PopulateField.JOB})

    async def list_for_job(self, actor: Actor, job_id: str) -> list[Application]:
        """
        Applications for one job, with applicant and job summaries.

        Raises:
            JobNotFoundError: If the job does not exist.
            ForbiddenError: If the actor is a recruiter who does not own the job.
        """
        job = await self._jobs.get_job(job_id)
        self._gate.ensure_can_view_job_applications(actor, job)
        return await self._repository.find_by_job(
            job.id, populate={PopulateField.JOB, PopulateField.APPLICANT}
        )

    async def list_all(self, actor: Actor) -> list[Application]:
        """Every application, with applicant (including role) and job summaries."""
        self._gate.ensure_can_view_all(actor)
        return await self._repository.find_all(
            populate={PopulateField.JOB, PopulateField.APPLICANT_ROLE}
        )

    async def open_resume(self, actor: Actor, application_id: str) -> tuple[Application, BlobStream]:
        """
        Authorize and open the resume of an application for streaming.

        The caller owns the returned stream and must consume or close it.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ForbiddenError: If the actor may not read this resume.
            ResumeNotFoundError: If the stored resume is missing.
        """
        application = await self._repository.find_by_id(application_id)
        job = await self._jobs.find_job(application.job_id)
        self._gate.ensure_can_download(actor, application, job)

        try:
            stream = await self._blob_store.open(application.attachment.blob_id)
        except BlobNotFoundError:
            logger.error(
                "Application references a missing resume blob",
                application_id=application.id,
                blob_id=application.attachment.blob_id,
                event_type="dangling_blob_reference",
            )
            raise ResumeNotFoundError(application.id)

        audit_logger.log_resume_accessed(user_id=actor.id, application_id=application.id)
        return application, stream

    async def change_status(self, actor: Actor, application_id: str, requested_status) -> Application:
        """
        Review an application.

        The requested value is validated before the lookup, and ownership
        after it, so the error order is 400, 404, 403.
        """
        status = parse_status(requested_status)
        application = await self._repository.find_by_id(application_id)
        return await self._workflow.apply_status(application, status, actor)
