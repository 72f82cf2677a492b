"""
Audit Logger

DESIGN DECISION: Every change to events, shared costs and tasks, every
spreadsheet sync and every advisor call is logged. This provides:
1. Traceability of who changed what during the session
2. Debugging capability when an import or advisor call misbehaves
3. A history the user can review on the settings page

The audit logger:
- Is synchronous, like the store it audits
- Gracefully handles failures (doesn't crash the app if the sink fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from event_budget.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from event_budget.models.event import ValidationResult
from event_budget.services.storage import AuditTrailInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The session audit trail (for the history page)
    """

    def __init__(
        self,
        trail: Optional[AuditTrailInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            trail: Sink for audit events.
                   If None, only logs locally.
        """
        self._trail = trail
        self._logger = structlog.get_logger(__name__)

    @property
    def trail(self) -> Optional[AuditTrailInterface]:
        return self._trail

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to the trail if one is configured.

        Returns True if the trail write succeeded (or no trail configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._trail:
            try:
                return self._trail.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_trail_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_validation_failed(
        self,
        result: ValidationResult,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a form submission rejected by the validator."""
        event = AuditEventBuilder.validation_failed(
            subject=result.subject,
            issues=[issue.model_dump() for issue in result.issues],
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_task_changed(
        self,
        event_type: AuditEventType,
        event_id: str,
        task_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a task being added, edited, toggled or removed."""
        event = AuditEventBuilder.task_changed(
            event_type=event_type,
            event_id=event_id,
            task_id=task_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a spreadsheet import).
    Pass it through all subsequent operations.
    """
    return uuid4()
