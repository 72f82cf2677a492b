"""Tests for the in-memory event store and audit trail."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from event_budget.models.audit import AuditEvent, AuditEventType
from event_budget.models.event import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    CostItem,
    EventData,
    ValidationResult,
)
from event_budget.services.storage import (
    SHARED_POOL,
    InMemoryAuditTrail,
    InMemoryEventStore,
    InvalidInputError,
    NotFoundError,
    StorageError,
    seed_snapshot,
)
from event_budget.validation import InputValidator


class PermissiveValidator(InputValidator):
    """Accepts everything, so only the models can reject input."""

    def validate_event(self, *args, **kwargs):
        return ValidationResult(subject="event")

    def validate_cost_item(self, *args, **kwargs):
        return ValidationResult(subject="cost_item")

    def validate_task(self, *args, **kwargs):
        return ValidationResult(subject="task")


def _create(store, name="Evento", budget="1000000", attendees="10"):
    return store.create_event(name, "", "", budget, attendees)


class TestEvents:
    """Tests for event lifecycle."""

    def test_create_event(self, store):
        """Test that a new event starts empty and gets an id."""
        event = store.create_event(
            "Los Ríos Atrae", "2026-01-07T09:00:00", "2026-01-07T19:00:00", "20000000", "150"
        )
        assert event.id
        assert event.total_budget == 20000000
        assert event.attendees == 150
        assert event.cost_items == ()
        assert event.tasks == ()
        assert store.events == (event,)

    def test_create_rejects_invalid_input(self, store):
        """Test that bad input raises and leaves the store unchanged."""
        with pytest.raises(InvalidInputError) as exc_info:
            _create(store, budget="0")
        assert exc_info.value.result.errors_for("total_budget")
        assert store.events == ()

    def test_create_rejects_overlong_name(self, store):
        """Test that a name over the limit is a validation error, not a crash."""
        with pytest.raises(InvalidInputError) as exc_info:
            _create(store, name="x" * (MAX_NAME_LENGTH + 1))
        assert exc_info.value.result.errors_for("name")
        assert store.events == ()

    def test_model_rejection_becomes_invalid_input(self):
        """Test that the store reports model errors as InvalidInputError."""
        store = InMemoryEventStore(validator=PermissiveValidator())
        with pytest.raises(InvalidInputError) as exc_info:
            _create(store, name="x" * (MAX_NAME_LENGTH + 1))
        assert exc_info.value.result.errors_for("name")
        assert store.events == ()

    def test_ids_never_reused(self, store):
        """Test that a deleted event's id is not issued again."""
        first = _create(store)
        store.delete_event(first.id)
        second = _create(store)
        assert second.id != first.id

    def test_update_event_keeps_children(self, scenario_store):
        """Test that editing fields leaves costs and tasks untouched."""
        before = scenario_store.get_event("e1")
        updated = scenario_store.update_event("e1", name="Nuevo nombre", attendees="200")
        assert updated.name == "Nuevo nombre"
        assert updated.attendees == 200
        assert updated.cost_items == before.cost_items
        assert scenario_store.get_event("e1") == updated

    def test_update_rejects_invalid_budget(self, scenario_store):
        """Test that an invalid edit is refused."""
        with pytest.raises(InvalidInputError):
            scenario_store.update_event("e1", total_budget="-5")
        assert scenario_store.get_event("e1").total_budget == 20_000_000

    def test_update_unknown_field(self, scenario_store):
        """Test that only editable fields are accepted."""
        with pytest.raises(StorageError, match="Unknown event fields"):
            scenario_store.update_event("e1", id="hijack")

    def test_update_missing_event(self, store):
        """Test editing an event that does not exist."""
        with pytest.raises(NotFoundError):
            store.update_event("nope", name="X")

    def test_delete_event(self, scenario_store):
        """Test that deleting removes the event and everything it owns."""
        assert scenario_store.delete_event("e1") is True
        assert scenario_store.get_event("e1") is None
        assert [event.id for event in scenario_store.events] == ["e2"]

    def test_delete_unknown_event_is_noop(self, scenario_store):
        """Test that deleting a missing id changes nothing."""
        before = scenario_store.snapshot()
        assert scenario_store.delete_event("missing") is False
        assert scenario_store.snapshot() == before

    def test_snapshots_are_stable(self, scenario_store):
        """Test that a snapshot is not affected by later mutations."""
        snapshot = scenario_store.snapshot()
        scenario_store.add_cost_item("e2", "Sonido", "1000")
        scenario_store.delete_event("e1")
        assert [event.id for event in snapshot.events] == ["e1", "e2"]
        assert snapshot.events[1].cost_items == ()


class TestCostItems:
    """Tests for specific and shared costs."""

    def test_add_specific_cost(self, scenario_store):
        """Test adding a cost to one event."""
        item = scenario_store.add_cost_item("e2", "Sonido", "300000")
        assert scenario_store.get_event("e2").cost_items == (item,)
        assert scenario_store.get_event("e1").find_cost_item(item.id) is None

    def test_add_variable_cost(self, scenario_store):
        """Test adding a per-attendee cost."""
        item = scenario_store.add_cost_item("e2", "Catering", "5000", is_variable=True)
        assert item.is_variable

    def test_add_shared_cost(self, scenario_store):
        """Test adding to the shared pool."""
        item = scenario_store.add_cost_item(SHARED_POOL, "Seguro", "100000")
        assert scenario_store.shared_costs[-1] == item
        assert len(scenario_store.shared_costs) == 3

    def test_shared_cost_cannot_be_variable(self, scenario_store):
        """Test that variable shared costs are rejected."""
        with pytest.raises(InvalidInputError):
            scenario_store.add_cost_item(SHARED_POOL, "Catering", "1000", is_variable=True)

    def test_rejects_non_positive_amount(self, scenario_store):
        """Test that a zero amount is rejected."""
        with pytest.raises(InvalidInputError):
            scenario_store.add_cost_item("e1", "Sonido", "0")
        assert len(scenario_store.get_event("e1").cost_items) == 2

    def test_rejects_overlong_description(self, scenario_store):
        """Test that specific and shared costs respect the description limit."""
        before = scenario_store.snapshot()
        with pytest.raises(InvalidInputError):
            scenario_store.add_cost_item("e1", "d" * (MAX_DESCRIPTION_LENGTH + 1), "100")
        with pytest.raises(InvalidInputError):
            scenario_store.add_cost_item(SHARED_POOL, "d" * (MAX_DESCRIPTION_LENGTH + 1), "100")
        assert scenario_store.snapshot() == before

    def test_model_rejection_becomes_invalid_input(self, scenario_events, scenario_shared):
        """Test that cost item model errors are not raised raw."""
        store = InMemoryEventStore(scenario_events, scenario_shared, validator=PermissiveValidator())
        with pytest.raises(InvalidInputError) as exc_info:
            store.add_cost_item("e1", "d" * (MAX_DESCRIPTION_LENGTH + 1), "100")
        assert exc_info.value.result.subject == "cost_item"

    def test_add_to_missing_event(self, scenario_store):
        """Test adding a cost to an unknown event."""
        with pytest.raises(NotFoundError):
            scenario_store.add_cost_item("missing", "Sonido", "1000")

    def test_remove_cost_items(self, scenario_store):
        """Test removing specific and shared costs."""
        assert scenario_store.remove_cost_item("e1", "c1") is True
        assert [item.id for item in scenario_store.get_event("e1").cost_items] == ["c2"]
        assert scenario_store.remove_cost_item(SHARED_POOL, "s1") is True
        assert [item.id for item in scenario_store.shared_costs] == ["s2"]

    def test_remove_unknown_cost_is_noop(self, scenario_store):
        """Test that removing a missing cost changes nothing."""
        before = scenario_store.snapshot()
        assert scenario_store.remove_cost_item("e1", "missing") is False
        assert scenario_store.remove_cost_item(SHARED_POOL, "missing") is False
        assert scenario_store.snapshot() == before


class TestTasks:
    """Tests for task management."""

    def test_add_task(self, scenario_store):
        """Test that new tasks start pending."""
        task = scenario_store.add_task("e1", "Reservar hotel", "2026-01-05")
        assert task.is_complete is False
        assert scenario_store.get_event("e1").pending_tasks == [task]

    def test_toggle_task_twice(self, scenario_store):
        """Test that toggling flips completion and back."""
        task = scenario_store.add_task("e1", "Reservar hotel")
        assert scenario_store.toggle_task("e1", task.id).is_complete is True
        assert scenario_store.get_event("e1").completed_tasks[0].id == task.id
        assert scenario_store.toggle_task("e1", task.id).is_complete is False

    def test_update_task(self, scenario_store):
        """Test editing description and due date."""
        task = scenario_store.add_task("e1", "Reservar hotel")
        updated = scenario_store.update_task("e1", task.id, description="Confirmar hotel", due_date="2026-01-06")
        assert updated.id == task.id
        assert updated.description == "Confirmar hotel"
        assert updated.due_date == "2026-01-06"

    def test_update_task_keeps_completion(self, scenario_store):
        """Test that editing does not reset completion."""
        task = scenario_store.add_task("e1", "Reservar hotel")
        scenario_store.toggle_task("e1", task.id)
        updated = scenario_store.update_task("e1", task.id, description="Otro")
        assert updated.is_complete is True

    def test_update_task_rejects_blank_description(self, scenario_store):
        """Test that a task cannot lose its description."""
        task = scenario_store.add_task("e1", "Reservar hotel")
        with pytest.raises(InvalidInputError):
            scenario_store.update_task("e1", task.id, description="  ")

    def test_rejects_overlong_description(self, scenario_store):
        """Test the task description limit on add and edit."""
        with pytest.raises(InvalidInputError):
            scenario_store.add_task("e1", "t" * (MAX_DESCRIPTION_LENGTH + 1))
        task = scenario_store.add_task("e1", "Reservar hotel")
        with pytest.raises(InvalidInputError):
            scenario_store.update_task("e1", task.id, description="t" * (MAX_DESCRIPTION_LENGTH + 1))
        assert scenario_store.get_event("e1").tasks == (task,)

    def test_model_rejection_becomes_invalid_input(self, scenario_events):
        """Test that task model errors are not raised raw."""
        store = InMemoryEventStore(scenario_events, validator=PermissiveValidator())
        with pytest.raises(InvalidInputError):
            store.add_task("e1", "t" * (MAX_DESCRIPTION_LENGTH + 1))
        task = store.add_task("e1", "Reservar hotel")
        with pytest.raises(InvalidInputError):
            store.update_task("e1", task.id, description="t" * (MAX_DESCRIPTION_LENGTH + 1))

    def test_unknown_task_operations(self, scenario_store):
        """Test operations on a missing task."""
        assert scenario_store.toggle_task("e1", "missing") is None
        assert scenario_store.update_task("e1", "missing", description="X") is None
        assert scenario_store.remove_task("e1", "missing") is False

    def test_remove_task(self, scenario_store):
        """Test removing a task."""
        task = scenario_store.add_task("e1", "Reservar hotel")
        assert scenario_store.remove_task("e1", task.id) is True
        assert scenario_store.get_event("e1").tasks == ()


class TestReplaceAll:
    """Tests for bulk replacement (imports)."""

    def test_replace_all(self, scenario_store):
        """Test that both collections are swapped together."""
        event = EventData(id="x", name="X", total_budget=1)
        scenario_store.replace_all([event], [])
        assert scenario_store.events == (event,)
        assert scenario_store.shared_costs == ()

    def test_duplicate_event_ids_rejected(self, scenario_store):
        """Test that duplicate ids leave the store unchanged."""
        before = scenario_store.snapshot()
        duplicate = EventData(id="x", name="X", total_budget=1)
        with pytest.raises(StorageError):
            scenario_store.replace_all([duplicate, duplicate], [])
        assert scenario_store.snapshot() == before

    def test_duplicate_shared_ids_rejected(self, store):
        """Test that shared cost ids must be unique."""
        item = CostItem(id="s", description="A", amount=1)
        with pytest.raises(StorageError):
            store.replace_all([], [item, item])


class TestSeedData:
    """Tests for the sample data."""

    def test_seed_snapshot(self):
        """Test the two sample events and the shared pool."""
        snapshot = seed_snapshot()
        assert [event.id for event in snapshot.events] == ["event1", "event2"]
        assert snapshot.events[0].name == "Los Ríos Atrae"
        assert all(event.total_budget == 20500000 for event in snapshot.events)
        assert len(snapshot.shared_costs) == 16
        assert sum(item.amount for item in snapshot.shared_costs) == 3_200_000

    def test_seeded_store(self):
        """Test that a store can start from the sample data."""
        snapshot = seed_snapshot()
        store = InMemoryEventStore(snapshot.events, snapshot.shared_costs)
        assert store.snapshot() == snapshot


class TestAuditTrail:
    """Tests for the session audit trail."""

    def _event(self, correlation_id=None, offset=0):
        return AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            description="created",
            correlation_id=correlation_id,
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=offset),
        )

    def test_recent_events_newest_first(self):
        """Test recent events ordering and limit."""
        trail = InMemoryAuditTrail()
        events = [self._event(offset=i) for i in range(3)]
        for event in events:
            trail.append_event(event)
        assert trail.get_recent_events(limit=2) == [events[2], events[1]]

    def test_correlation_lookup(self):
        """Test filtering by correlation id."""
        trail = InMemoryAuditTrail()
        correlation_id = uuid4()
        late = self._event(correlation_id, offset=5)
        early = self._event(correlation_id, offset=1)
        trail.append_event(late)
        trail.append_event(self._event())
        trail.append_event(early)
        assert trail.get_events_by_correlation_id(correlation_id) == [early, late]

    def test_trail_is_bounded(self):
        """Test that the oldest events are dropped past the limit."""
        trail = InMemoryAuditTrail(max_events=2)
        events = [self._event(offset=i) for i in range(3)]
        for event in events:
            trail.append_event(event)
        assert trail.get_recent_events() == [events[2], events[1]]
