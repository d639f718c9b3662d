"""
Submission of new applications.

The resume is stored in the blob store before the application record that
references it is created, so a visible record always has its resume. If the
record cannot be created afterwards, the stored blob is left unreferenced
and the failure is reported as a ServerError.
"""
import posixpath
from collections.abc import AsyncIterator
from dataclasses import dataclass

from job_intake.core.audit import audit_logger
from job_intake.core.config import settings
from job_intake.core.exceptions import (
    ErrorCode,
    InvalidResumeFormatError,
    MissingFieldError,
    MissingResumeError,
    ResumeTooLargeError,
    ServerError,
    UnauthenticatedError,
)
from job_intake.core.metrics import record_application_submitted, record_resume_stored
from job_intake.log.logging import logger
from job_intake.models.actor import Actor
from job_intake.models.application import Application, ApplicationCreate, Attachment
from job_intake.services.application_repository import ApplicationRepository
from job_intake.services.authorization import AuthorizationGate
from job_intake.services.blob_store import GridFSBlobStore
from job_intake.services.job_directory import JobDirectory

DEFAULT_FILENAME = "resume"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class AttachmentUpload:
    """An opened resume stream plus the metadata reported by the client."""
    stream: AsyncIterator[bytes] | None
    filename: str | None = None
    content_type: str | None = None
    size_hint: int | None = None


def clean_filename(filename: str | None) -> str:
    """Drop client-side directory components and control characters from an uploaded filename."""
    if not filename:
        return DEFAULT_FILENAME
    name = "".join(char for char in filename if char >= " " and char != "\x7f")
    name = posixpath.basename(name.replace("\\", "/")).strip()
    return name or DEFAULT_FILENAME


def clean_content_type(content_type: str | None) -> str:
    """Lower-cased media type without parameters."""
    if not content_type:
        return DEFAULT_CONTENT_TYPE
    return content_type.split(";", 1)[0].strip().lower() or DEFAULT_CONTENT_TYPE


class MeteredStream:
    """
    Re-yields a byte stream, counting bytes and enforcing a size limit.

    The first chunk has already been read from ``rest`` by the caller.
    """

    def __init__(self, first_chunk: bytes, rest: AsyncIterator[bytes], max_bytes: int):
        self._first_chunk = first_chunk
        self._rest = rest
        self._max_bytes = max_bytes
        self.size = 0

    def _count(self, chunk: bytes) -> bytes:
        self.size += len(chunk)
        if self._max_bytes and self.size > self._max_bytes:
            raise ResumeTooLargeError(self._max_bytes)
        return chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._count(self._first_chunk)
        async for chunk in self._rest:
            if chunk:
                yield self._count(chunk)


async def first_chunk(stream: AsyncIterator[bytes]) -> tuple[bytes | None, AsyncIterator[bytes]]:
    """Read up to the first non-empty chunk; None means the stream was empty."""
    iterator = stream.__aiter__()
    async for chunk in iterator:
        if chunk:
            return chunk, iterator
    return None, iterator


class SubmissionService:
    """
    Creates applications: validates the request, stores the resume, then
    persists the record that references it.
    """

    def __init__(
        self,
        blob_store: GridFSBlobStore,
        repository: ApplicationRepository,
        jobs: JobDirectory,
        gate: AuthorizationGate,
    ):
        self._blob_store = blob_store
        self._repository = repository
        self._jobs = jobs
        self._gate = gate

    async def submit(
        self,
        actor: Actor | None,
        job_id: str | None,
        cover_letter: str | None,
        attachment: AttachmentUpload | None,
    ) -> Application:
        """
        Submit an application with its resume.

        Args:
            actor: The applicant.
            job_id: The job posting applied to.
            cover_letter: Optional cover letter, stored as an empty string if absent.
            attachment: The resume stream and its metadata.

        Returns:
            The created application, status pending.

        Raises:
            UnauthenticatedError: If there is no actor.
            ForbiddenError: If the actor is not a jobseeker.
            ValidationError: If the job ID or resume is missing, the resume
                type is not accepted, or the resume is too large.
            JobNotFoundError: If the job does not exist.
            StorageWriteError: If the resume cannot be stored.
            ServerError: If the record cannot be created after storing the resume.
        """
        if actor is None or not actor.id:
            raise UnauthenticatedError()
        self._gate.ensure_can_submit(actor)

        job_id = job_id.strip() if job_id else ""
        if not job_id:
            raise MissingFieldError("jobId", error_code=ErrorCode.JOB_ID_REQUIRED)

        job = await self._jobs.get_job(job_id)

        if attachment is None or attachment.stream is None:
            record_application_submitted("rejected")
            raise MissingResumeError()

        filename = clean_filename(attachment.filename)
        content_type = clean_content_type(attachment.content_type)
        allowed = settings.resume_content_types
        if allowed and content_type not in allowed:
            record_application_submitted("rejected")
            raise InvalidResumeFormatError(content_type, allowed)

        chunk, rest = await first_chunk(attachment.stream)
        if chunk is None:
            record_application_submitted("rejected")
            raise MissingResumeError("Resume file is empty")

        metered = MeteredStream(chunk, rest, settings.max_resume_size_bytes)
        blob_id = await self._blob_store.store(
            metered, filename, content_type, size_hint=attachment.size_hint
        )
        record_resume_stored(metered.size)
        audit_logger.log_resume_uploaded(user_id=actor.id, blob_id=blob_id, size_bytes=metered.size)

        try:
            application = await self._repository.create(
                ApplicationCreate(
                    job_id=job.id,
                    applicant_id=actor.id,
                    cover_letter=cover_letter or "",
                    attachment=Attachment(
                        blob_id=blob_id,
                        filename=filename,
                        content_type=content_type,
                        size_bytes=metered.size,
                    ),
                )
            )
        except Exception as e:
            logger.error(
                "Application record not created; stored resume is unreferenced",
                blob_id=blob_id,
                job_id=job.id,
                user_id=actor.id,
                error=str(e),
                event_type="orphan_blob",
            )
            record_application_submitted("failed")
            raise ServerError("Failed to create application") from e

        logger.info(
            "Application submitted",
            application_id=application.id,
            job_id=job.id,
            user_id=actor.id,
            size_bytes=metered.size,
            event_type="application_submitted",
        )
        audit_logger.log_application_created(
            user_id=actor.id, application_id=application.id, job_id=job.id
        )
        record_application_submitted("created")
        return application
