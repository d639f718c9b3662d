from pydantic import BaseModel, Field


class Job(BaseModel):
    """
    Job posting as read from the externally owned jobs collection.
    """
    id: str = Field(..., description="The unique ID of the job posting.")
    posted_by: str | None = Field(None, description="ID of the recruiter who posted the job.")
    title: str | None = Field(None, description="The title of the job.")
    company: str | None = Field(None, description="The name of the company offering the job.")
    location: str | None = Field(None, description="The location of the job.")

    class Config:
        from_attributes = True


class JobSummary(BaseModel):
    """
    Job fields joined into application listings.
    """
    id: str
    title: str | None = None
    company: str | None = None
    location: str | None = None
    salary: str | int | float | None = None


class ApplicantSummary(BaseModel):
    """
    Applicant fields joined into recruiter/admin listings. Never carries credentials.
    """
    id: str
    name: str | None = None
    email: str | None = None
    role: str | None = None
