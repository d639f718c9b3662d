"""
Application models for the job application intake workflow.

An application binds one applicant to one job posting and carries exactly one
resume attachment stored in the blob store.
"""
from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field

from job_intake.models.job import ApplicantSummary, JobSummary


class ApplicationStatus(str, Enum):
    """
    Enum representing the possible states of a job application.

    Lifecycle: pending -> accepted | rejected
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Statuses a reviewer may set
REVIEW_STATUSES = (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED)


class Attachment(BaseModel):
    """
    Reference from an application to its stored resume blob.
    """
    blob_id: str = Field(..., description="ID of the stored resume blob")
    filename: str = Field(..., description="Original filename of the resume")
    content_type: str = Field(..., description="MIME type reported at upload")
    size_bytes: int = Field(..., ge=0, description="Size of the stored resume in bytes")

    class Config:
        frozen = True


class ApplicationCreate(BaseModel):
    """
    Record handed to the repository at submission time.

    Required fields are optional here so that the repository, not the model,
    reports missing input as a ValidationError.
    """
    job_id: str | None = None
    applicant_id: str | None = None
    cover_letter: str = ""
    attachment: Attachment | None = None


class Application(BaseModel):
    """
    Model representing an application document in MongoDB.
    """
    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "_id"),
        description="MongoDB document ID",
    )
    job_id: str = Field(..., description="The job posting applied to")
    applicant_id: str = Field(..., description="The user who submitted the application")
    cover_letter: str = Field(default="", description="Optional cover letter text")
    attachment: Attachment = Field(..., description="The resume attached at submission")
    status: ApplicationStatus = Field(
        default=ApplicationStatus.PENDING,
        description="Current review status"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Timestamp when the application was created"
    )
    updated_at: datetime | None = Field(
        None,
        description="Timestamp when the status was last changed"
    )

    # Populated on request by the repository
    job: JobSummary | None = Field(None, description="Joined job summary")
    applicant: ApplicantSummary | None = Field(None, description="Joined applicant summary")

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True


class ApplicationResponse(BaseModel):
    """
    Response model for a single application.
    """
    success: bool = True
    application: Application


class ApplicationListResponse(BaseModel):
    """
    Response model for application listings.
    """
    success: bool = True
    count: int = Field(..., description="Number of applications returned")
    applications: list[Application]


class StatusUpdateRequest(BaseModel):
    """
    Request body for a status change. Validated by the status workflow so an
    invalid value is reported with the service's own error body.
    """
    status: str | None = Field(None, description="Target status: accepted or rejected")


class StatusUpdateResponse(BaseModel):
    """
    Response model for a status change.
    """
    success: bool = True
    message: str
    application: Application
