"""
Audit Models for the Event Budget Dashboard

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every change to events and shared costs
2. Debugging information when an import or advisor call goes wrong
3. A session history the user can review on the settings page

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Events
    EVENT_CREATED = "event_created"
    EVENT_UPDATED = "event_updated"
    EVENT_DELETED = "event_deleted"

    # Cost items (event-specific or shared)
    COST_ITEM_ADDED = "cost_item_added"
    COST_ITEM_REMOVED = "cost_item_removed"

    # Tasks
    TASK_ADDED = "task_added"
    TASK_UPDATED = "task_updated"
    TASK_TOGGLED = "task_toggled"
    TASK_REMOVED = "task_removed"

    # Input validation
    VALIDATION_FAILED = "validation_failed"

    # Spreadsheet sync
    WORKBOOK_EXPORTED = "workbook_exported"
    WORKBOOK_IMPORTED = "workbook_imported"
    WORKBOOK_IMPORT_FAILED = "workbook_import_failed"

    # Advisory services
    ADVICE_REQUESTED = "advice_requested"
    ADVICE_FAILED = "advice_failed"
    VOICE_SESSION_STARTED = "voice_session_started"
    VOICE_SESSION_ENDED = "voice_session_ended"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique audit event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'event', 'cost_item', 'task', 'workbook')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., everything in one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.event_created(event_id, name, budget)
        event = AuditEventBuilder.workbook_imported(counts, correlation_id)
    """

    @staticmethod
    def event_created(
        event_id: str,
        name: str,
        total_budget: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Event created: {name}",
            details={
                "name": name,
                "total_budget": total_budget,
            },
            is_user_action=True,
        )

    @staticmethod
    def event_updated(
        event_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_UPDATED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Event updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def event_deleted(
        event_id: str,
        name: str,
        cost_items: int,
        tasks: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Event deleted: {name}",
            details={
                "name": name,
                "cost_items_removed": cost_items,
                "tasks_removed": tasks,
            },
            is_user_action=True,
        )

    @staticmethod
    def cost_item_added(
        owner: str,
        cost_id: str,
        amount: int,
        is_variable: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COST_ITEM_ADDED,
            entity_type="cost_item",
            entity_id=cost_id,
            correlation_id=correlation_id,
            description=f"Cost item added to {owner}",
            details={
                "owner": owner,
                "amount": amount,
                "is_variable": is_variable,
            },
            is_user_action=True,
        )

    @staticmethod
    def cost_item_removed(
        owner: str,
        cost_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COST_ITEM_REMOVED,
            entity_type="cost_item",
            entity_id=cost_id,
            correlation_id=correlation_id,
            description=f"Cost item removed from {owner}",
            details={"owner": owner},
            is_user_action=True,
        )

    @staticmethod
    def task_changed(
        event_type: AuditEventType,
        event_id: str,
        task_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        verb = event_type.value.replace("task_", "")
        return AuditEvent(
            event_type=event_type,
            entity_type="task",
            entity_id=task_id,
            correlation_id=correlation_id,
            description=f"Task {verb}",
            details={"event_id": event_id},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"{subject} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def workbook_exported(
        filename: str,
        events: int,
        shared_costs: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WORKBOOK_EXPORTED,
            entity_type="workbook",
            correlation_id=correlation_id,
            description=f"Workbook exported: {filename}",
            details={
                "filename": filename,
                "events": events,
                "shared_costs": shared_costs,
            },
            is_user_action=True,
        )

    @staticmethod
    def workbook_imported(
        filename: str,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        dropped = counts.get("dropped_rows", 0)
        return AuditEvent(
            event_type=AuditEventType.WORKBOOK_IMPORTED,
            severity=AuditSeverity.WARNING if dropped else AuditSeverity.INFO,
            entity_type="workbook",
            correlation_id=correlation_id,
            description=f"Workbook imported: {filename}",
            details={"filename": filename, **counts},
            is_user_action=True,
        )

    @staticmethod
    def workbook_import_failed(
        filename: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WORKBOOK_IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="workbook",
            correlation_id=correlation_id,
            description=f"Workbook import aborted: {filename}",
            error_message=error_message,
            details={"filename": filename},
            is_user_action=True,
        )

    @staticmethod
    def advice_requested(
        question: str,
        events: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_REQUESTED,
            entity_type="advice",
            correlation_id=correlation_id,
            description="Budget advice requested",
            details={
                "question": question,
                "events": events,
            },
            is_user_action=True,
        )

    @staticmethod
    def advice_failed(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"Advisor call failed: {service}",
            error_message=error_message,
            details={"service": service},
            is_user_action=True,
        )

    @staticmethod
    def voice_session(
        started: bool,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.VOICE_SESSION_STARTED
                if started
                else AuditEventType.VOICE_SESSION_ENDED
            ),
            entity_type="voice_session",
            correlation_id=correlation_id,
            description="Voice session started" if started else "Voice session ended",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
