"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the event store.
This allows us to:
1. Keep the dashboard state in memory today (state is per session)
2. Swap in a persistent backend later without touching the flows
3. Keep business logic decoupled from storage implementation

Mutation discipline: every operation replaces whole values (a new EventData,
a new tuple of cost items) and is atomic from the caller's point of view.
An operation either fully applies or raises before touching anything.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Sequence, Union
from uuid import UUID

from event_budget.models.audit import AuditEvent
from event_budget.models.event import (
    CostItem,
    EventData,
    StoreSnapshot,
    Task,
    ValidationResult,
)


class CostPool(Enum):
    """Owner of cost items that belong to no single event."""
    SHARED = "shared"


SHARED_POOL = CostPool.SHARED

# A cost item belongs to an event (by id) or to the shared pool
CostOwner = Union[str, CostPool]


class EventStoreInterface(ABC):
    """
    Abstract interface for the authoritative events + shared costs state.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def snapshot(self) -> StoreSnapshot:
        """Current events and shared costs, as one consistent value."""
        pass

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[EventData]:
        """
        Retrieve an event by its ID.

        Returns:
            The event if found, None otherwise
        """
        pass

    @abstractmethod
    def create_event(
        self,
        name: str,
        start_date: str,
        end_date: str,
        total_budget: Union[int, str],
        attendees: Union[int, str],
    ) -> EventData:
        """
        Create an event with empty cost and task lists.

        Raises:
            InvalidInputError: If budget <= 0, attendees < 0 or name is empty
        """
        pass

    @abstractmethod
    def update_event(self, event_id: str, **fields) -> EventData:
        """
        Merge fields into an existing event.

        Cost items and tasks are only touched when passed explicitly.

        Raises:
            NotFoundError: If the event doesn't exist
            InvalidInputError: If the merged event is invalid
        """
        pass

    @abstractmethod
    def delete_event(self, event_id: str) -> bool:
        """
        Delete an event together with its cost items and tasks.

        The caller must have obtained the user's confirmation first.

        Returns:
            True if an event was removed
        """
        pass

    @abstractmethod
    def add_cost_item(
        self,
        owner: CostOwner,
        description: str,
        amount: Union[int, str],
        is_variable: bool = False,
    ) -> CostItem:
        """
        Add a cost item to an event or to the shared pool.

        Raises:
            NotFoundError: If the owning event doesn't exist
            InvalidInputError: If amount <= 0 or description is empty
        """
        pass

    @abstractmethod
    def remove_cost_item(self, owner: CostOwner, cost_id: str) -> bool:
        """
        Remove a cost item. Unknown cost ids are a no-op.

        Returns:
            True if an item was removed
        """
        pass

    @abstractmethod
    def add_task(self, event_id: str, description: str, due_date: str = "") -> Task:
        """
        Add a pending task to an event.

        Raises:
            NotFoundError: If the event doesn't exist
            InvalidInputError: If description is empty or due_date malformed
        """
        pass

    @abstractmethod
    def update_task(
        self,
        event_id: str,
        task_id: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Optional[Task]:
        """Edit a task's description and/or due date. No-op if absent."""
        pass

    @abstractmethod
    def toggle_task(self, event_id: str, task_id: str) -> Optional[Task]:
        """Flip a task's completion flag. No-op if absent."""
        pass

    @abstractmethod
    def remove_task(self, event_id: str, task_id: str) -> bool:
        """Remove a task. Unknown task ids are a no-op."""
        pass

    @abstractmethod
    def replace_all(
        self,
        events: Sequence[EventData],
        shared_costs: Sequence[CostItem],
    ) -> None:
        """
        Replace the whole state in one step (used by spreadsheet import).
        """
        pass


class AuditTrailInterface(ABC):
    """
    Abstract interface for audit trail storage.

    Audit trails are append-only - we never delete or modify entries.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the trail.

        Returns:
            True if recorded successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for one user action, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class InvalidInputError(StorageError):
    """
    Input rejected before any state was touched.

    Carries the full ValidationResult so callers can show every issue.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.user_message() or f"Invalid {result.subject}")
