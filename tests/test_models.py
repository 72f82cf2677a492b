"""
Tests for Event Budget Dashboard

Test strategy:
1. Unit tests for individual components (models, engine, validators)
2. Integration tests for flows (with fake Gemini clients)
3. No real API calls in tests (use fakes)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from event_budget.models.event import (
    BudgetHealth,
    ChartBar,
    CostItem,
    EventData,
    StoreSnapshot,
    Task,
    TaskStatus,
    ValidationIssue,
    ValidationResult,
)
from event_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestEventModels:
    """Tests for event-related Pydantic models."""

    def test_cost_item_creation(self):
        """Test CostItem model creation."""
        item = CostItem(description="Iluminación", amount=350000)
        assert item.description == "Iluminación"
        assert item.amount == 350000
        assert item.is_variable is False
        assert item.id

    def test_cost_item_strips_whitespace(self):
        """Test that whitespace is stripped from descriptions."""
        item = CostItem(description="  Catering  ", amount=1000)
        assert item.description == "Catering"

    def test_cost_item_rejects_empty_description(self):
        """Test that a blank description is rejected."""
        with pytest.raises(ValueError):
            CostItem(description="   ", amount=1000)

    def test_models_are_frozen(self):
        """Test that models cannot be edited in place."""
        item = CostItem(description="Sonido", amount=1000)
        with pytest.raises(ValueError):
            item.amount = 2000

    def test_generated_ids_are_distinct(self):
        """Test that default ids are fresh for every instance."""
        first = Task(description="Reservar hotel")
        second = Task(description="Reservar hotel")
        assert first.id != second.id

    def test_task_status_follows_completion(self):
        """Test Task.status maps to the spreadsheet labels."""
        assert Task(description="A").status == TaskStatus.PENDING
        assert Task(description="A", is_complete=True).status == TaskStatus.COMPLETED
        assert TaskStatus.COMPLETED.value == "Completada"

    def test_event_requires_positive_budget(self):
        """Test that a zero or negative budget is rejected."""
        with pytest.raises(ValueError):
            EventData(name="Evento", total_budget=0)

    def test_event_rejects_negative_attendees(self):
        """Test that negative attendees are rejected."""
        with pytest.raises(ValueError):
            EventData(name="Evento", total_budget=1000, attendees=-1)

    def test_event_rejects_duplicate_cost_ids(self):
        """Test that cost item ids are unique within an event."""
        with pytest.raises(ValueError, match="Cost item ids"):
            EventData(
                name="Evento",
                total_budget=1000,
                cost_items=(
                    CostItem(id="x", description="A", amount=1),
                    CostItem(id="x", description="B", amount=2),
                ),
            )

    def test_event_partitions_tasks(self):
        """Test pending and completed task views."""
        event = EventData(
            name="Evento",
            total_budget=1000,
            tasks=(
                Task(id="t1", description="Uno"),
                Task(id="t2", description="Dos", is_complete=True),
            ),
        )
        assert [task.id for task in event.pending_tasks] == ["t1"]
        assert [task.id for task in event.completed_tasks] == ["t2"]
        assert event.find_task("t2").is_complete
        assert event.find_task("missing") is None

    def test_snapshot_event_count(self):
        """Test StoreSnapshot counts events."""
        snapshot = StoreSnapshot(events=(EventData(name="A", total_budget=1),))
        assert snapshot.event_count == 1
        assert StoreSnapshot().event_count == 0

    def test_chart_bar_label_and_sign(self):
        """Test ChartBar display helpers."""
        bar = ChartBar(event_id="e", name="E", profit_margin=Decimal("-12.345"), height_pct=50.0)
        assert bar.label == "-12.3%"
        assert bar.is_positive is False

    def test_budget_health_values(self):
        """Test BudgetHealth enum values."""
        assert BudgetHealth.HEALTHY.value == "healthy"
        assert BudgetHealth.CRITICAL.value == "critical"


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_result_no_errors(self):
        """Test ValidationResult with no errors."""
        result = ValidationResult(subject="event", issues=[])
        assert not result.has_errors
        assert result.is_valid
        assert result.error_count == 0

    def test_validation_result_with_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(
            subject="event",
            issues=[
                ValidationIssue(
                    field="total_budget",
                    issue_type="invalid_value",
                    message="El presupuesto debe ser un número positivo.",
                    severity="error",
                ),
                ValidationIssue(
                    field="name",
                    issue_type="suspicious",
                    message="Nombre muy largo",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert result.warnings == ["Nombre muy largo"]
        assert result.errors_for("total_budget") == [
            "El presupuesto debe ser un número positivo."
        ]
        assert result.user_message() == "El presupuesto debe ser un número positivo."

    def test_validation_issue_rejects_unknown_severity(self):
        """Test that severity is restricted."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.EVENT_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None
        assert event.timestamp is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.WORKBOOK_EXPORTED,
            description="Workbook exported",
            entity_type="workbook",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "workbook_exported"
        assert log_dict["entity_type"] == "workbook"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_builder_event_created(self):
        """Test AuditEventBuilder.event_created."""
        event = AuditEventBuilder.event_created("e1", "Los Ríos Atrae", 20000000)
        assert event.event_type == AuditEventType.EVENT_CREATED
        assert event.entity_id == "e1"
        assert event.details["total_budget"] == 20000000
        assert event.is_user_action

    def test_audit_builder_event_deleted_is_warning(self):
        """Test that deletions are logged as warnings."""
        event = AuditEventBuilder.event_deleted("e1", "Evento", cost_items=2, tasks=1)
        assert event.severity == AuditSeverity.WARNING
        assert event.details["cost_items_removed"] == 2

    def test_audit_builder_import_with_dropped_rows_is_warning(self):
        """Test that dropped import rows raise the severity."""
        clean = AuditEventBuilder.workbook_imported("a.xlsx", {"events": 2, "dropped_rows": 0})
        lossy = AuditEventBuilder.workbook_imported("a.xlsx", {"events": 2, "dropped_rows": 3})
        assert clean.severity == AuditSeverity.INFO
        assert lossy.severity == AuditSeverity.WARNING
        assert lossy.details["dropped_rows"] == 3

    def test_audit_builder_task_changed(self):
        """Test task audit descriptions."""
        event = AuditEventBuilder.task_changed(AuditEventType.TASK_TOGGLED, "e1", "t1")
        assert event.description == "Task toggled"
        assert event.entity_id == "t1"
        assert event.details == {"event_id": "e1"}

    def test_audit_builder_advice_failed(self):
        """Test AuditEventBuilder.advice_failed."""
        event = AuditEventBuilder.advice_failed("gemini_text", "boom")
        assert event.event_type == AuditEventType.ADVICE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"
