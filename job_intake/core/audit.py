"""
Audit trail for security relevant events.

Audit entries go through loguru like everything else, bound with
``audit=True`` and the event as ``audit_event`` so that a sink can route
them separately. They never contain resume contents or token values.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from job_intake.core.correlation import get_correlation_id
from job_intake.log.logging import logger


class AuditEventType(str, Enum):
    AUTH_TOKEN_INVALID = "auth.token.invalid"
    AUTHZ_ACCESS_DENIED = "authz.access.denied"
    APP_CREATED = "application.created"
    APP_STATUS_CHANGED = "application.status.changed"
    RESUME_UPLOADED = "resume.uploaded"
    RESUME_ACCESSED = "resume.accessed"


# Events that record a refusal are logged as warnings
_FAILURE_EVENTS = {AuditEventType.AUTH_TOKEN_INVALID, AuditEventType.AUTHZ_ACCESS_DENIED}


@dataclass(frozen=True)
class AuditEvent:
    event_type: AuditEventType
    user_id: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    correlation_id: str | None = field(default_factory=get_correlation_id)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    @property
    def outcome(self) -> str:
        return "failure" if self.event_type in _FAILURE_EVENTS else "success"

    def as_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["event_type"] = self.event_type.value
        record["outcome"] = self.outcome
        return record


class AuditLogger:
    """
    Writes audit events.

    Example:
        audit_logger.log_access_denied(
            user_id="6", resource_type="application", resource_id="65f0...", reason="not owner"
        )
    """

    def __init__(self):
        self._logger = logger.bind(audit=True)

    def record(self, event: AuditEvent) -> None:
        level = "WARNING" if event.outcome == "failure" else "INFO"
        self._logger.bind(audit_event=event.as_record()).log(
            level, f"AUDIT {event.event_type.value} user={event.user_id} resource={event.resource_id}"
        )

    def log_token_invalid(self, reason: str | None = None) -> None:
        self.record(AuditEvent(AuditEventType.AUTH_TOKEN_INVALID, reason=reason))

    def log_access_denied(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        reason: str | None = None,
    ) -> None:
        self.record(
            AuditEvent(
                AuditEventType.AUTHZ_ACCESS_DENIED,
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                reason=reason,
            )
        )

    def log_application_created(self, user_id: str, application_id: str, job_id: str) -> None:
        self.record(
            AuditEvent(
                AuditEventType.APP_CREATED,
                user_id=user_id,
                resource_type="application",
                resource_id=application_id,
                details={"job_id": job_id},
            )
        )

    def log_application_status_changed(
        self, user_id: str, application_id: str, old_status: str, new_status: str
    ) -> None:
        self.record(
            AuditEvent(
                AuditEventType.APP_STATUS_CHANGED,
                user_id=user_id,
                resource_type="application",
                resource_id=application_id,
                details={"old_status": old_status, "new_status": new_status},
            )
        )

    def log_resume_uploaded(self, user_id: str, blob_id: str, size_bytes: int) -> None:
        self.record(
            AuditEvent(
                AuditEventType.RESUME_UPLOADED,
                user_id=user_id,
                resource_type="resume",
                resource_id=blob_id,
                details={"size_bytes": size_bytes},
            )
        )

    def log_resume_accessed(self, user_id: str, application_id: str) -> None:
        self.record(
            AuditEvent(
                AuditEventType.RESUME_ACCESSED,
                user_id=user_id,
                resource_type="application",
                resource_id=application_id,
            )
        )


audit_logger = AuditLogger()
