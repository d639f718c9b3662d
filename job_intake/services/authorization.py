"""
Authorization rules for applications.

| Operation                  | jobseeker      | recruiter        | admin |
|----------------------------|----------------|------------------|-------|
| submit / view own          | allow          | deny             | deny  |
| view applications for job  | deny           | owner of the job | allow |
| view all applications      | deny           | deny             | allow |
| download resume            | applicant only | owner of the job | allow |
| change status              | deny           | owner of the job | allow |

Ownership always compares the job's ``posted_by`` with the actor's ``id``.
"""
from job_intake.core.audit import audit_logger
from job_intake.core.exceptions import ForbiddenError
from job_intake.core.metrics import record_authorization_denied
from job_intake.log.logging import logger
from job_intake.models.actor import Actor, Role
from job_intake.models.application import Application
from job_intake.models.job import Job


def owns_job(actor: Actor, job: Job | None) -> bool:
    """True if the actor posted the job. A missing job is owned by nobody."""
    if job is None or job.posted_by is None:
        return False
    return str(job.posted_by) == str(actor.id)


class AuthorizationGate:
    """
    Decides whether an actor may read or change applications.

    Every ``ensure_*`` method returns None when the operation is allowed and
    raises ForbiddenError otherwise.
    """

    def ensure_can_submit(self, actor: Actor) -> None:
        if actor.role != Role.JOBSEEKER:
            self._deny(actor, "submit", "application", None, "Only jobseekers can apply to jobs")

    def ensure_can_view_own(self, actor: Actor) -> None:
        if actor.role != Role.JOBSEEKER:
            self._deny(
                actor, "view_own", "application", None,
                "Only jobseekers have their own applications",
            )

    def ensure_can_view_job_applications(self, actor: Actor, job: Job) -> None:
        if actor.is_admin:
            return
        if actor.role == Role.RECRUITER and owns_job(actor, job):
            return
        self._deny(actor, "view_job_applications", "job", job.id, "You do not own this job")

    def ensure_can_view_all(self, actor: Actor) -> None:
        if not actor.is_admin:
            self._deny(actor, "view_all", "application", None, "Admin access required")

    def ensure_can_download(self, actor: Actor, application: Application, job: Job | None) -> None:
        if actor.is_admin:
            return
        if actor.role == Role.JOBSEEKER and application.applicant_id == actor.id:
            return
        if actor.role == Role.RECRUITER and owns_job(actor, job):
            return
        self._deny(
            actor, "download_resume", "application", application.id,
            "You are not allowed to access this resume",
        )

    def ensure_can_change_status(
        self, actor: Actor, application: Application, job: Job | None
    ) -> None:
        if actor.is_admin:
            return
        if actor.role == Role.RECRUITER and owns_job(actor, job):
            return
        self._deny(
            actor, "change_status", "application", application.id,
            "You do not own this job's applications",
        )

    @staticmethod
    def _deny(
        actor: Actor,
        operation: str,
        resource_type: str,
        resource_id: str | None,
        message: str,
    ) -> None:
        logger.warning(
            "Access denied",
            operation=operation,
            user_id=actor.id,
            role=actor.role.value,
            resource_id=resource_id,
            event_type="access_denied",
        )
        audit_logger.log_access_denied(
            user_id=actor.id,
            resource_type=resource_type,
            resource_id=resource_id,
            reason=message,
        )
        record_authorization_denied(operation, actor.role.value)
        raise ForbiddenError(message)
