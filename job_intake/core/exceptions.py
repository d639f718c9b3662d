"""
Service errors and their HTTP representation.

Every error belongs to one kind of the taxonomy below and carries a stable
code plus a message meant for people. The response body is

    {"detail": {"error": <kind>, "code": <code>, "message": ..., "details": [...],
                "correlation_id": ..., "timestamp": ...}}

Driver errors and stack traces are logged and never put in a body.
"""

from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from job_intake.core.correlation import get_correlation_id
from job_intake.log.logging import logger


class ErrorKind:
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFound"
    STORAGE_WRITE = "StorageWriteError"
    STORAGE_READ = "StorageReadError"
    SERVER = "ServerError"


class ErrorCode:
    """Stable codes clients can branch on."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_INVALID = "TOKEN_INVALID"
    FORBIDDEN = "FORBIDDEN"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    JOB_ID_REQUIRED = "JOB_ID_REQUIRED"
    RESUME_REQUIRED = "RESUME_REQUIRED"
    RESUME_TYPE_NOT_ALLOWED = "RESUME_TYPE_NOT_ALLOWED"
    RESUME_TOO_LARGE = "RESUME_TOO_LARGE"
    INVALID_STATUS = "INVALID_STATUS"

    NOT_FOUND = "NOT_FOUND"
    APPLICATION_NOT_FOUND = "APPLICATION_NOT_FOUND"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    BLOB_NOT_FOUND = "BLOB_NOT_FOUND"
    RESUME_NOT_FOUND = "RESUME_NOT_FOUND"

    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: str | None = None


class ErrorBody(BaseModel):
    error: str
    code: str
    message: str
    details: list[ErrorDetail] | None = None
    correlation_id: str | None = None
    timestamp: str


class JobIntakeException(HTTPException):
    """
    Base class of every error the service reports.

    Subclasses set ``kind``, ``status_code`` and a default ``error_code``;
    instances may override the code.
    """

    kind: str = ErrorKind.SERVER
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: list[ErrorDetail] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = error_code or type(self).error_code
        body = ErrorBody(
            error=self.kind,
            code=self.error_code,
            message=message,
            details=details,
            correlation_id=get_correlation_id(),
            timestamp=datetime.utcnow().isoformat() + "Z",
        )
        super().__init__(status_code=self.http_status, detail=body.model_dump(), headers=headers)

    def __str__(self) -> str:
        return self.message


# 401 / 403


class UnauthenticatedError(JobIntakeException):
    kind = ErrorKind.UNAUTHENTICATED
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = ErrorCode.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidTokenError(UnauthenticatedError):
    error_code = ErrorCode.TOKEN_INVALID

    def __init__(self):
        super().__init__("Invalid authentication token")


class ForbiddenError(JobIntakeException):
    kind = ErrorKind.FORBIDDEN
    http_status = status.HTTP_403_FORBIDDEN
    error_code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


# 404


class NotFoundError(JobIntakeException):
    kind = ErrorKind.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND
    error_code = ErrorCode.NOT_FOUND
    resource = "Resource"

    def __init__(self, identifier: Any):
        super().__init__(f"{self.resource} not found: {identifier}")


class ApplicationNotFoundError(NotFoundError):
    error_code = ErrorCode.APPLICATION_NOT_FOUND
    resource = "Application"


class JobNotFoundError(NotFoundError):
    error_code = ErrorCode.JOB_NOT_FOUND
    resource = "Job"


class BlobNotFoundError(NotFoundError):
    """Unknown blob id; internal to the blob store and its callers."""

    error_code = ErrorCode.BLOB_NOT_FOUND
    resource = "Blob"


class ResumeNotFoundError(NotFoundError):
    """An application whose stored resume cannot be found."""

    error_code = ErrorCode.RESUME_NOT_FOUND
    resource = "Resume of application"


# 400


class ValidationError(JobIntakeException):
    kind = ErrorKind.VALIDATION
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.VALIDATION_ERROR


class MissingFieldError(ValidationError):
    def __init__(self, field: str, error_code: str | None = None):
        message = f"{field} is required"
        code = error_code or ErrorCode.VALIDATION_ERROR
        super().__init__(
            message,
            error_code=code,
            details=[ErrorDetail(code=code, message=message, field=field)],
        )


class MissingResumeError(ValidationError):
    error_code = ErrorCode.RESUME_REQUIRED

    def __init__(self, reason: str = "Resume file (field 'resume') is required"):
        super().__init__(reason)


class InvalidResumeFormatError(ValidationError):
    error_code = ErrorCode.RESUME_TYPE_NOT_ALLOWED

    def __init__(self, content_type: str | None, allowed: list[str]):
        super().__init__(
            f"Resume type {content_type or 'unknown'} is not accepted; "
            f"use one of: {', '.join(allowed)}"
        )


class ResumeTooLargeError(ValidationError):
    error_code = ErrorCode.RESUME_TOO_LARGE

    def __init__(self, max_bytes: int):
        super().__init__(f"Resume exceeds the maximum size of {max_bytes} bytes")


class InvalidStatusError(ValidationError):
    error_code = ErrorCode.INVALID_STATUS

    def __init__(self, requested: Any, allowed: list[str]):
        super().__init__(f"Invalid status {requested!r}; expected one of: {', '.join(allowed)}")


# 500


class StorageWriteError(JobIntakeException):
    kind = ErrorKind.STORAGE_WRITE
    error_code = ErrorCode.STORAGE_WRITE_FAILED

    def __init__(self, message: str = "Failed to store file"):
        super().__init__(message)


class StorageReadError(JobIntakeException):
    kind = ErrorKind.STORAGE_READ
    error_code = ErrorCode.STORAGE_READ_FAILED

    def __init__(self, message: str = "Failed to read file"):
        super().__init__(message)


class ServerError(JobIntakeException):
    def __init__(self, message: str = "Server error"):
        super().__init__(message)


# Handlers


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected and answer with a bare ServerError."""
    logger.opt(exception=exc).error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        event_type="unhandled_error",
    )
    error = ServerError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests get the ValidationError body and status 400."""
    details = [
        ErrorDetail(
            code=ErrorCode.VALIDATION_ERROR,
            message=str(error.get("msg", "Invalid value")),
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body") or None,
        )
        for error in exc.errors()
    ]
    error = ValidationError("Invalid request", details=details)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
