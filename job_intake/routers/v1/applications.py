"""
v1 Application endpoints.

Provides endpoints for:
- Submitting an application with a resume (POST /v1/applications/apply)
- Listing the caller's own applications (GET /v1/applications/my)
- Downloading a resume (GET /v1/applications/{id}/resume)
- Listing applications for a job (GET /v1/applications/job/{job_id})
- Listing all applications (GET /v1/applications)
- Reviewing an application (PUT /v1/applications/{id}/status)
"""
from collections.abc import AsyncIterator
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from job_intake.core.auth import get_current_actor
from job_intake.core.config import settings
from job_intake.core.metrics import record_resume_download
from job_intake.dependencies import get_application_service, get_submission_service
from job_intake.models.actor import Actor
from job_intake.models.application import (
    ApplicationListResponse,
    ApplicationResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from job_intake.services.application_service import ApplicationService
from job_intake.services.blob_store import BlobStream
from job_intake.services.submission_service import AttachmentUpload, SubmissionService

router = APIRouter(prefix="/applications", tags=["applications"])


async def iter_upload(upload: UploadFile, chunk_size: int) -> AsyncIterator[bytes]:
    """Read an uploaded file in bounded chunks."""
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk


class ResumeResponse(StreamingResponse):
    """
    Streams a blob to the client and releases it when the response ends,
    whether the body was sent in full, the client went away or the task
    was cancelled.
    """

    def __init__(self, stream: BlobStream, **kwargs):
        self.blob_stream = stream
        self.completed = False
        super().__init__(self._relay(), **kwargs)

    async def _relay(self) -> AsyncIterator[bytes]:
        async for chunk in self.blob_stream:
            yield chunk
        self.completed = True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.blob_stream.aclose()
            record_resume_download("completed" if self.completed else "aborted")


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 encoded name."""
    fallback = filename.encode("ascii", "replace").decode("ascii")
    fallback = "".join(char for char in fallback if char.isprintable())
    fallback = fallback.replace("\\", "_").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post(
    "/apply",
    summary="Apply to a job",
    description="Multipart form with jobId, optional coverLetter and the resume file (field 'resume').",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply_to_job(
    job_id: str | None = Form(None, alias="jobId"),
    cover_letter: str | None = Form(None, alias="coverLetter"),
    resume: UploadFile | None = File(None),
    actor: Actor = Depends(get_current_actor),
    submission: SubmissionService = Depends(get_submission_service),
):
    """
    Submit an application.

    Returns:
        ApplicationResponse with the created application (status pending).
    """
    attachment = None
    if resume is not None:
        attachment = AttachmentUpload(
            stream=iter_upload(resume, settings.upload_read_chunk_bytes),
            filename=resume.filename,
            content_type=resume.content_type,
            size_hint=resume.size,
        )

    application = await submission.submit(
        actor=actor,
        job_id=job_id,
        cover_letter=cover_letter,
        attachment=attachment,
    )
    return ApplicationResponse(application=application)


@router.get(
    "/my",
    summary="List my applications",
    response_model=ApplicationListResponse,
)
async def get_my_applications(
    actor: Actor = Depends(get_current_actor),
    service: ApplicationService = Depends(get_application_service),
):
    applications = await service.list_own(actor)
    return ApplicationListResponse(count=len(applications), applications=applications)


@router.get(
    "/job/{job_id}",
    summary="List applications for a job",
    description="Recruiters may only list applications for jobs they posted.",
    response_model=ApplicationListResponse,
)
async def get_applications_for_job(
    job_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ApplicationService = Depends(get_application_service),
):
    applications = await service.list_for_job(actor, job_id)
    return ApplicationListResponse(count=len(applications), applications=applications)


@router.get(
    "",
    summary="List all applications",
    description="Admin only.",
    response_model=ApplicationListResponse,
)
async def get_all_applications(
    actor: Actor = Depends(get_current_actor),
    service: ApplicationService = Depends(get_application_service),
):
    applications = await service.list_all(actor)
    return ApplicationListResponse(count=len(applications), applications=applications)


@router.get(
    "/{application_id}/resume",
    summary="Download the resume of an application",
    response_class=StreamingResponse,
    responses={200: {"content": {"application/octet-stream": {}}}},
)
async def download_resume(
    application_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Stream the resume with its original content type and filename.
    """
    application, stream = await service.open_resume(actor, application_id)
    attachment = application.attachment

    return ResumeResponse(
        stream,
        media_type=attachment.content_type,
        headers={
            "Content-Disposition": content_disposition(attachment.filename),
            "Content-Length": str(stream.length),
            "Cache-Control": "no-store",
        },
    )


@router.put(
    "/{application_id}/status",
    summary="Accept or reject an application",
    response_model=StatusUpdateResponse,
)
async def update_application_status(
    application_id: str,
    body: StatusUpdateRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.change_status(actor, application_id, body.status)
    return StatusUpdateResponse(
        message=f"Application {application.status}",
        application=application,
    )
