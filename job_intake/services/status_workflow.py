"""
Review status transitions for applications.

pending -> accepted | rejected. Setting a reviewed application to either
review status again is allowed; pending is never a valid target.
"""
from job_intake.core.audit import audit_logger
from job_intake.core.exceptions import InvalidStatusError
from job_intake.core.metrics import record_status_change
from job_intake.log.logging import logger
from job_intake.models.actor import Actor
from job_intake.models.application import Application, ApplicationStatus, REVIEW_STATUSES
from job_intake.services.application_repository import ApplicationRepository
from job_intake.services.authorization import AuthorizationGate
from job_intake.services.job_directory import JobDirectory


def parse_status(value) -> ApplicationStatus:
    """
    Parse a requested review status.

    Surrounding whitespace and case are ignored.

    Raises:
        InvalidStatusError: Unless the value is accepted or rejected.
    """
    allowed = [status.value for status in REVIEW_STATUSES]
    normalized = value.strip().lower() if isinstance(value, str) else value
    if normalized not in allowed:
        raise InvalidStatusError(value, allowed)
    return ApplicationStatus(normalized)


class StatusWorkflow:
    """
    Applies review decisions to applications on behalf of authorized actors.
    """

    def __init__(
        self,
        repository: ApplicationRepository,
        jobs: JobDirectory,
        gate: AuthorizationGate,
    ):
        self._repository = repository
        self._jobs = jobs
        self._gate = gate

    async def apply_status(
        self,
        application: Application,
        requested_status,
        actor: Actor,
    ) -> Application:
        """
        Move an application to a review status.

        Args:
            application: The application to change.
            requested_status: accepted or rejected (string or ApplicationStatus).
            actor: The reviewer.

        Returns:
            The updated application.

        Raises:
            InvalidStatusError: If the requested status is not a review status.
            ForbiddenError: If the actor may not review this application.
            ApplicationNotFoundError: If the application disappeared meanwhile.
        """
        status = parse_status(requested_status)

        job = await self._jobs.find_job(application.job_id)
        self._gate.ensure_can_change_status(actor, application, job)

        old_status = ApplicationStatus(application.status).value
        updated = await self._repository.update_status(application.id, status)

        logger.info(
            "Application status changed",
            application_id=application.id,
            old_status=old_status,
            new_status=status.value,
            user_id=actor.id,
            event_type="status_changed",
        )
        audit_logger.log_application_status_changed(
            user_id=actor.id,
            application_id=application.id,
            old_status=old_status,
            new_status=status.value,
        )
        record_status_change(status.value)
        return updated
