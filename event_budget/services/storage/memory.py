"""
In-Memory Storage Implementation

DESIGN DECISION: Dashboard state is transient. It lives for one session
and is lost on reload; the spreadsheet export is how users keep a copy.

The store holds two immutable tuples (events and shared costs). Every
mutation validates first, builds new values, then swaps the tuple in a
single assignment. There is no window where a reader could observe a
half-applied change.
"""

from typing import Iterable, Optional, Sequence, Union
from uuid import UUID

from pydantic import ValidationError

from event_budget.models.audit import AuditEvent
from event_budget.models.event import (
    CostItem,
    EventData,
    StoreSnapshot,
    Task,
    ValidationIssue,
    ValidationResult,
    new_id,
)
from event_budget.services.storage.interface import (
    AuditTrailInterface,
    CostOwner,
    CostPool,
    EventStoreInterface,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from event_budget.validation import InputValidator, parse_int_field


EDITABLE_EVENT_FIELDS = frozenset({
    "name",
    "start_date",
    "end_date",
    "total_budget",
    "attendees",
    "cost_items",
    "tasks",
})


def _result_from_pydantic(subject: str, exc: ValidationError) -> ValidationResult:
    """Turn a pydantic error into our ValidationResult."""
    issues = [
        ValidationIssue(
            field=".".join(str(part) for part in error["loc"]) or subject,
            issue_type=error["type"],
            message=error["msg"],
            severity="error",
        )
        for error in exc.errors()
    ]
    return ValidationResult(subject=subject, issues=issues)


def _unique_id(taken: Iterable[str]) -> str:
    taken = set(taken)
    candidate = new_id()
    while candidate in taken:
        candidate = new_id()
    return candidate


class InMemoryEventStore(EventStoreInterface):
    """
    Event store backed by process memory.

    Event ids are never reused, even after the event is deleted.
    """

    def __init__(
        self,
        events: Sequence[EventData] = (),
        shared_costs: Sequence[CostItem] = (),
        validator: Optional[InputValidator] = None,
    ):
        self._validator = validator or InputValidator()
        self._events: tuple[EventData, ...] = ()
        self._shared_costs: tuple[CostItem, ...] = ()
        self._issued_event_ids: set[str] = set()
        self.replace_all(events, shared_costs)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(events=self._events, shared_costs=self._shared_costs)

    @property
    def events(self) -> tuple[EventData, ...]:
        return self._events

    @property
    def shared_costs(self) -> tuple[CostItem, ...]:
        return self._shared_costs

    def get_event(self, event_id: str) -> Optional[EventData]:
        return next((event for event in self._events if event.id == event_id), None)

    def _require_event(self, event_id: str) -> EventData:
        event = self.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return event

    def _swap_event(self, updated: EventData) -> None:
        self._events = tuple(
            updated if event.id == updated.id else event
            for event in self._events
        )

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def create_event(
        self,
        name: str,
        start_date: str,
        end_date: str,
        total_budget: Union[int, str],
        attendees: Union[int, str],
    ) -> EventData:
        result = self._validator.validate_event(
            name, total_budget, attendees, start_date or "", end_date or ""
        )
        if result.has_errors:
            raise InvalidInputError(result)

        try:
            event = EventData(
                id=_unique_id(self._issued_event_ids),
                name=name,
                start_date=start_date or "",
                end_date=end_date or "",
                total_budget=parse_int_field(total_budget),
                attendees=parse_int_field(attendees),
            )
        except ValidationError as e:
            raise InvalidInputError(_result_from_pydantic("event", e))

        self._issued_event_ids.add(event.id)
        self._events = (*self._events, event)
        return event

    def update_event(self, event_id: str, **fields) -> EventData:
        unknown = set(fields) - EDITABLE_EVENT_FIELDS
        if unknown:
            raise StorageError(f"Unknown event fields: {', '.join(sorted(unknown))}")

        current = self._require_event(event_id)

        for key in ("total_budget", "attendees"):
            if key in fields:
                parsed = parse_int_field(fields[key])
                fields[key] = parsed if parsed is not None else fields[key]

        merged = {**current.model_dump(), **fields}
        result = self._validator.validate_event(
            merged["name"],
            merged["total_budget"],
            merged["attendees"],
            merged["start_date"],
            merged["end_date"],
        )
        if result.has_errors:
            raise InvalidInputError(result)

        try:
            updated = EventData.model_validate(merged)
        except ValidationError as e:
            raise InvalidInputError(_result_from_pydantic("event", e))

        self._swap_event(updated)
        return updated

    def delete_event(self, event_id: str) -> bool:
        if self.get_event(event_id) is None:
            return False
        # Owned cost items and tasks live inside the event and go with it
        self._events = tuple(event for event in self._events if event.id != event_id)
        return True

    # -------------------------------------------------------------------------
    # Cost items
    # -------------------------------------------------------------------------

    def add_cost_item(
        self,
        owner: CostOwner,
        description: str,
        amount: Union[int, str],
        is_variable: bool = False,
    ) -> CostItem:
        shared = owner is CostPool.SHARED
        event = None if shared else self._require_event(owner)

        result = self._validator.validate_cost_item(
            description, amount, is_variable, shared=shared
        )
        if result.has_errors:
            raise InvalidInputError(result)

        siblings = self._shared_costs if shared else event.cost_items
        try:
            item = CostItem(
                id=_unique_id(existing.id for existing in siblings),
                description=description,
                amount=parse_int_field(amount),
                is_variable=is_variable,
            )
        except ValidationError as e:
            raise InvalidInputError(_result_from_pydantic("cost_item", e))

        if shared:
            self._shared_costs = (*self._shared_costs, item)
        else:
            self._swap_event(
                event.model_copy(update={"cost_items": (*event.cost_items, item)})
            )
        return item

    def remove_cost_item(self, owner: CostOwner, cost_id: str) -> bool:
        if owner is CostPool.SHARED:
            remaining = tuple(item for item in self._shared_costs if item.id != cost_id)
            removed = len(remaining) != len(self._shared_costs)
            self._shared_costs = remaining
            return removed

        event = self._require_event(owner)
        if event.find_cost_item(cost_id) is None:
            return False
        self._swap_event(event.model_copy(update={
            "cost_items": tuple(item for item in event.cost_items if item.id != cost_id),
        }))
        return True

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def add_task(self, event_id: str, description: str, due_date: str = "") -> Task:
        event = self._require_event(event_id)

        result = self._validator.validate_task(description, due_date or "")
        if result.has_errors:
            raise InvalidInputError(result)

        try:
            task = Task(
                id=_unique_id(existing.id for existing in event.tasks),
                description=description,
                due_date=due_date or "",
            )
        except ValidationError as e:
            raise InvalidInputError(_result_from_pydantic("task", e))
        self._swap_event(event.model_copy(update={"tasks": (*event.tasks, task)}))
        return task

    def _replace_task(self, event: EventData, task: Task) -> None:
        self._swap_event(event.model_copy(update={
            "tasks": tuple(task if t.id == task.id else t for t in event.tasks),
        }))

    def update_task(
        self,
        event_id: str,
        task_id: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Optional[Task]:
        event = self._require_event(event_id)
        task = event.find_task(task_id)
        if task is None:
            return None

        new_description = task.description if description is None else description
        new_due_date = task.due_date if due_date is None else due_date

        result = self._validator.validate_task(new_description, new_due_date)
        if result.has_errors:
            raise InvalidInputError(result)

        try:
            updated = Task(
                id=task.id,
                description=new_description,
                due_date=new_due_date,
                is_complete=task.is_complete,
            )
        except ValidationError as e:
            raise InvalidInputError(_result_from_pydantic("task", e))
        self._replace_task(event, updated)
        return updated

    def toggle_task(self, event_id: str, task_id: str) -> Optional[Task]:
        event = self._require_event(event_id)
        task = event.find_task(task_id)
        if task is None:
            return None

        toggled = task.model_copy(update={"is_complete": not task.is_complete})
        self._replace_task(event, toggled)
        return toggled

    def remove_task(self, event_id: str, task_id: str) -> bool:
        event = self._require_event(event_id)
        if event.find_task(task_id) is None:
            return False
        self._swap_event(event.model_copy(update={
            "tasks": tuple(task for task in event.tasks if task.id != task_id),
        }))
        return True

    # -------------------------------------------------------------------------
    # Bulk replace
    # -------------------------------------------------------------------------

    def replace_all(
        self,
        events: Sequence[EventData],
        shared_costs: Sequence[CostItem],
    ) -> None:
        events = tuple(events)
        shared_costs = tuple(shared_costs)

        event_ids = [event.id for event in events]
        if len(event_ids) != len(set(event_ids)):
            raise StorageError("Event ids must be unique")

        cost_ids = [item.id for item in shared_costs]
        if len(cost_ids) != len(set(cost_ids)):
            raise StorageError("Shared cost ids must be unique")

        self._events = events
        self._shared_costs = shared_costs
        self._issued_event_ids.update(event_ids)


class InMemoryAuditTrail(AuditTrailInterface):
    """
    Session-scoped audit trail.

    Audit events are append-only.
    """

    def __init__(self, max_events: int = 1000):
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]


# =============================================================================
# SAMPLE DATA
# =============================================================================

_SEED_SHARED_COSTS = [
    ("Pago Proyectista", 2000000),
    ("Pago Productor Boris Gonzalez", 1200000),
    ("Productora (para ambos eventos)", 0),
    ("Hotel: Salón para 150 personas", 0),
    ("Hotel: 1 Coffee Break", 0),
    ("Hotel: Almuerzo Sky Bar (20pax, 7 Ene)", 0),
    ("Hotel: Almuerzo Sky Bar (20pax, 8 Ene)", 0),
    ("Hotel: Rueda de Negocios (50pax, 7 Ene)", 0),
    ("Hotel: Rueda de Negocios (50pax, 8 Ene)", 0),
    ("Hotel: Cocktail Clausura/Inauguración (150pax)", 0),
    ("Hotel: Alojamiento 15 invitados", 0),
    ("Amplificación y microfonía", 0),
    ("Iluminación", 0),
    ("Pantallas gigantes LED", 0),
    ("Transporte: Avión", 0),
    ("Transporte: Traslados locales", 0),
]


def seed_snapshot() -> StoreSnapshot:
    """The two sample events and the shared pool the dashboard starts with."""
    events = (
        EventData(
            id="event1",
            name="Los Ríos Atrae",
            start_date="2026-01-07T09:00:00",
            end_date="2026-01-07T19:00:00",
            total_budget=20500000,
            attendees=150,
        ),
        EventData(
            id="event2",
            name="Ruedalab IA",
            start_date="2026-01-08T09:00:00",
            end_date="2026-01-08T19:00:00",
            total_budget=20500000,
            attendees=150,
        ),
    )
    shared_costs = tuple(
        CostItem(id=f"sc{index}", description=description, amount=amount)
        for index, (description, amount) in enumerate(_SEED_SHARED_COSTS, start=1)
    )
    return StoreSnapshot(events=events, shared_costs=shared_costs)
