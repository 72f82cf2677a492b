"""Tests for the audit logger."""

from uuid import UUID

from event_budget.audit import AuditLogger, create_correlation_id
from event_budget.models.audit import AuditEventBuilder, AuditEventType
from event_budget.models.event import ValidationIssue, ValidationResult
from event_budget.services.storage import InMemoryAuditTrail


class BrokenTrail(InMemoryAuditTrail):
    def append_event(self, event):
        raise RuntimeError("sink down")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_appends_to_trail(self, audit_logger):
        """Test that logged events reach the trail."""
        event = AuditEventBuilder.event_created("e1", "Feria", 1000)
        assert audit_logger.log(event) is True
        assert audit_logger.trail.get_recent_events() == [event]

    def test_log_without_trail(self):
        """Test local-only logging."""
        logger = AuditLogger()
        assert logger.trail is None
        assert logger.log(AuditEventBuilder.event_created("e1", "Feria", 1000)) is True

    def test_trail_failure_is_not_raised(self):
        """Test that a failing sink does not break the caller."""
        logger = AuditLogger(BrokenTrail())
        assert logger.log(AuditEventBuilder.event_created("e1", "Feria", 1000)) is False

    def test_log_validation_failed(self, audit_logger):
        """Test that rejected input is logged with its issues."""
        result = ValidationResult(subject="event", issues=[
            ValidationIssue(field="name", issue_type="missing", message="Falta", severity="error"),
        ])
        correlation_id = create_correlation_id()
        audit_logger.log_validation_failed(result, correlation_id)

        (event,) = audit_logger.trail.get_events_by_correlation_id(correlation_id)
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.entity_type == "event"
        assert event.details["issues"][0]["field"] == "name"

    def test_log_task_changed(self, audit_logger):
        """Test task audit events."""
        audit_logger.log_task_changed(AuditEventType.TASK_REMOVED, "e1", "t1")
        (event,) = audit_logger.trail.get_recent_events()
        assert event.event_type == AuditEventType.TASK_REMOVED
        assert event.entity_id == "t1"

    def test_log_external_service_error(self, audit_logger):
        """Test external failures are logged as errors."""
        audit_logger.log_external_service_error("gemini_live", "refused")
        (event,) = audit_logger.trail.get_recent_events()
        assert event.event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert event.severity.value == "error"
        assert event.details == {"service": "gemini_live"}

    def test_correlation_ids_are_unique(self):
        """Test correlation id generation."""
        first = create_correlation_id()
        assert isinstance(first, UUID)
        assert first != create_correlation_id()
