from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Roles an authenticated actor can hold."""

    JOBSEEKER = "jobseeker"
    RECRUITER = "recruiter"
    ADMIN = "admin"


class Actor(BaseModel):
    """
    The authenticated identity making a request.

    Produced once per request by the authentication dependency. ``id`` is the
    canonical identity used for every ownership comparison.
    """

    id: str = Field(..., min_length=1, description="Canonical user ID")
    role: Role = Field(..., description="Role of the user")
    email: str | None = Field(None, description="User email, informational only")

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
