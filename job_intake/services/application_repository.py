"""
Persistence of application records.

Records reference their resume by blob id. Listing methods can join a
summary of the job and of the applicant; the joins use explicit projections
so that no other user or job field is ever read.
"""
from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum
from functools import wraps

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from job_intake.core.exceptions import (
    ApplicationNotFoundError,
    ErrorCode,
    JobIntakeException,
    MissingFieldError,
    ServerError,
)
from job_intake.log.logging import logger
from job_intake.models.application import Application, ApplicationCreate, ApplicationStatus
from job_intake.models.job import ApplicantSummary, JobSummary
from job_intake.services.job_directory import id_query


class PopulateField(str, Enum):
    """Related data that can be joined into listed applications."""
    JOB = "job"
    APPLICANT = "applicant"
    APPLICANT_ROLE = "applicant_role"


JOB_SUMMARY_PROJECTION = {"title": 1, "company": 1, "location": 1, "salary": 1}
APPLICANT_SUMMARY_PROJECTION = {"name": 1, "email": 1}


def db_operation(operation: str):
    """
    Decorator that turns unexpected driver errors into a ServerError.

    Service errors pass through untouched; anything else is logged with its
    details and reported to the caller without them.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except JobIntakeException:
                raise
            except Exception as e:
                logger.exception(
                    "Database operation failed",
                    operation=operation,
                    error=str(e),
                    event_type="db_error",
                )
                raise ServerError("Database operation failed") from e

        return wrapper

    return decorator


class ApplicationRepository:
    """
    Stores applications in MongoDB and reads job/user summaries for display.
    """

    def __init__(self, applications, jobs, users):
        self._applications = applications
        self._jobs = jobs
        self._users = users

    @db_operation("create")
    async def create(self, record: ApplicationCreate) -> Application:
        """
        Insert a new application with initial 'pending' status.

        Args:
            record: The application to persist.

        Returns:
            The stored application.

        Raises:
            ValidationError: If job, applicant or attachment is missing.
        """
        if not record.job_id:
            raise MissingFieldError("jobId", error_code=ErrorCode.JOB_ID_REQUIRED)
        if not record.applicant_id:
            raise MissingFieldError("applicantId")
        if record.attachment is None or not record.attachment.blob_id:
            raise MissingFieldError("resume", error_code=ErrorCode.RESUME_REQUIRED)

        now = datetime.utcnow()
        doc = {
            "job_id": record.job_id,
            "applicant_id": record.applicant_id,
            "cover_letter": record.cover_letter or "",
            "attachment": record.attachment.model_dump(),
            "status": ApplicationStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }

        result = await self._applications.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._to_model(doc)

    @db_operation("find_by_id")
    async def find_by_id(self, application_id: str) -> Application:
        """
        Raises:
            ApplicationNotFoundError: If the id is unknown or malformed.
        """
        if not application_id or not ObjectId.is_valid(application_id):
            raise ApplicationNotFoundError(application_id)
        doc = await self._applications.find_one({"_id": ObjectId(application_id)})
        if not doc:
            raise ApplicationNotFoundError(application_id)
        return self._to_model(doc)

    @db_operation("find_by_applicant")
    async def find_by_applicant(
        self, applicant_id: str, populate: Iterable[PopulateField] = ()
    ) -> list[Application]:
        return await self._find({"applicant_id": applicant_id}, populate)

    @db_operation("find_by_job")
    async def find_by_job(
        self, job_id: str, populate: Iterable[PopulateField] = ()
    ) -> list[Application]:
        return await self._find({"job_id": job_id}, populate)

    @db_operation("find_all")
    async def find_all(self, populate: Iterable[PopulateField] = ()) -> list[Application]:
        """All applications. Callers are responsible for restricting this to admins."""
        return await self._find({}, populate)

    @db_operation("update_status")
    async def update_status(self, application_id: str, status: ApplicationStatus) -> Application:
        """
        Persist a new status; no other field is touched.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
        """
        if not application_id or not ObjectId.is_valid(application_id):
            raise ApplicationNotFoundError(application_id)

        doc = await self._applications.find_one_and_update(
            {"_id": ObjectId(application_id)},
            {"$set": {"status": ApplicationStatus(status).value, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise ApplicationNotFoundError(application_id)
        return self._to_model(doc)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _find(self, query: dict, populate: Iterable[PopulateField]) -> list[Application]:
        cursor = self._applications.find(query).sort("created_at", DESCENDING)
        docs = await cursor.to_list(length=None)
        applications = [self._to_model(doc) for doc in docs]

        populate = set(populate)
        if PopulateField.JOB in populate:
            await self._populate_jobs(applications)
        if populate & {PopulateField.APPLICANT, PopulateField.APPLICANT_ROLE}:
            await self._populate_applicants(
                applications, with_role=PopulateField.APPLICANT_ROLE in populate
            )
        return applications

    async def _populate_jobs(self, applications: list[Application]) -> None:
        job_ids = {application.job_id for application in applications}
        if not job_ids:
            return

        cursor = self._jobs.find(
            {"_id": {"$in": [id_query(job_id) for job_id in job_ids]}},
            JOB_SUMMARY_PROJECTION,
        )
        summaries = {
            str(doc["_id"]): JobSummary(
                id=str(doc["_id"]),
                title=doc.get("title"),
                company=doc.get("company"),
                location=doc.get("location"),
                salary=doc.get("salary"),
            )
            for doc in await cursor.to_list(length=None)
        }
        for application in applications:
            application.job = summaries.get(application.job_id)

    async def _populate_applicants(self, applications: list[Application], with_role: bool) -> None:
        applicant_ids = {application.applicant_id for application in applications}
        if not applicant_ids:
            return

        projection = dict(APPLICANT_SUMMARY_PROJECTION)
        if with_role:
            projection["role"] = 1

        cursor = self._users.find(
            {"_id": {"$in": [id_query(applicant_id) for applicant_id in applicant_ids]}},
            projection,
        )
        summaries = {
            str(doc["_id"]): ApplicantSummary(
                id=str(doc["_id"]),
                name=doc.get("name"),
                email=doc.get("email"),
                role=doc.get("role") if with_role else None,
            )
            for doc in await cursor.to_list(length=None)
        }
        for application in applications:
            application.applicant = summaries.get(application.applicant_id)

    @staticmethod
    def _to_model(doc: dict) -> Application:
        return Application.model_validate({**doc, "id": str(doc["_id"])})
