"""
Core Data Models for the Event Budget Dashboard

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be immutable, so every change produces a new value
4. Support the audit trail

DESIGN DECISION: Every model is frozen. The store never edits an event in
place; it builds a new EventData (with new cost/task tuples) and swaps it in.
Readers therefore always see a consistent snapshot.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 300


def new_id() -> str:
    """Fresh identifier for events, cost items and tasks."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TaskStatus(str, Enum):
    """
    Task status labels as they appear in the spreadsheet.
    """
    COMPLETED = "Completada"
    PENDING = "Pendiente"


class BudgetHealth(str, Enum):
    """
    How much of the budget is left, relative to the total.

    Drives the colour of the remaining-budget figure on each card.
    """
    HEALTHY = "healthy"    # 40% or more left
    WARNING = "warning"    # between 15% and 40% left
    CRITICAL = "critical"  # under 15% left (or over budget)


# =============================================================================
# CORE EVENT MODELS
# =============================================================================

class CostItem(BaseModel):
    """
    A single cost line.

    Owned either by one event (specific cost) or by the shared pool,
    never both. When is_variable is set, amount is a per-attendee rate.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Identifier, unique within the owning list"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=MAX_DESCRIPTION_LENGTH,
        description="What the cost is for"
    )
    amount: int = Field(
        ...,
        description="Amount in currency units (per attendee when variable)"
    )
    is_variable: bool = Field(
        default=False,
        description="Priced per attendee instead of a fixed amount"
    )


class Task(BaseModel):
    """A to-do item attached to one event."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Identifier, unique within the owning event"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=MAX_DESCRIPTION_LENGTH,
        description="What has to be done"
    )
    due_date: str = Field(
        default="",
        description="ISO date (YYYY-MM-DD) or empty for no date"
    )
    is_complete: bool = False

    @property
    def status(self) -> TaskStatus:
        return TaskStatus.COMPLETED if self.is_complete else TaskStatus.PENDING


class EventData(BaseModel):
    """
    One event with its budget, attendance, specific costs and tasks.

    CRITICAL: Instances are immutable. Adding or removing a cost item or
    task means building a new EventData with a new tuple.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Identifier, unique across the store and never reused"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        description="Display name (also the join key in spreadsheets)"
    )
    start_date: str = Field(
        default="",
        description="ISO datetime or empty"
    )
    end_date: str = Field(
        default="",
        description="ISO datetime or empty"
    )
    total_budget: int = Field(
        ...,
        gt=0,
        description="Total budget in currency units"
    )
    attendees: int = Field(
        default=0,
        ge=0,
        description="Expected attendees (prices variable costs)"
    )
    cost_items: tuple[CostItem, ...] = Field(default_factory=tuple)
    tasks: tuple[Task, ...] = Field(default_factory=tuple)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'EventData':
        """Cost item and task ids must be unique within this event."""
        cost_ids = [item.id for item in self.cost_items]
        if len(cost_ids) != len(set(cost_ids)):
            raise ValueError("Cost item ids must be unique within an event")

        task_ids = [task.id for task in self.tasks]
        if len(task_ids) != len(set(task_ids)):
            raise ValueError("Task ids must be unique within an event")

        return self

    @property
    def pending_tasks(self) -> list[Task]:
        return [task for task in self.tasks if not task.is_complete]

    @property
    def completed_tasks(self) -> list[Task]:
        return [task for task in self.tasks if task.is_complete]

    def find_cost_item(self, cost_id: str) -> Optional[CostItem]:
        return next((item for item in self.cost_items if item.id == cost_id), None)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self.tasks if task.id == task_id), None)


class StoreSnapshot(BaseModel):
    """
    The whole dashboard state at one instant: events plus the shared pool.

    Read once before building a prompt or an export so that every figure
    comes from the same state.
    """
    model_config = ConfigDict(frozen=True)

    events: tuple[EventData, ...] = Field(default_factory=tuple)
    shared_costs: tuple[CostItem, ...] = Field(default_factory=tuple)

    @property
    def event_count(self) -> int:
        return len(self.events)


# =============================================================================
# DERIVED FIGURES (recomputed on every read, never stored)
# =============================================================================

class EventFinancials(BaseModel):
    """
    Every derived figure for one event, computed from a store snapshot.

    Cards, the chart, the spreadsheet summary and the advisor prompt all
    read from this same bundle so they can never disagree.
    """
    model_config = ConfigDict(frozen=True)

    event_id: str
    name: str
    total_budget: int
    attendees: int
    own_cost_total: int = Field(
        description="Specific costs with variable items priced by attendees"
    )
    shared_cost_share: Decimal = Field(
        description="This event's even share of the shared pool"
    )
    total_spent: Decimal
    remaining_budget: Decimal = Field(
        description="May be negative when the event is over budget"
    )
    profit_margin: Decimal = Field(
        description="remaining / total budget x 100, may be negative"
    )
    health: BudgetHealth

    @property
    def is_over_budget(self) -> bool:
        return self.remaining_budget < 0


class ChartBar(BaseModel):
    """One bar of the profitability comparison chart."""
    model_config = ConfigDict(frozen=True)

    event_id: str
    name: str
    profit_margin: Decimal
    height_pct: float = Field(
        ge=0.0,
        le=100.0,
        description="Bar height relative to the largest absolute margin"
    )

    @property
    def is_positive(self) -> bool:
        return self.profit_margin >= 0

    @property
    def label(self) -> str:
        return f"{float(self.profit_margin):.1f}%"


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="User-facing description of the issue (Spanish)"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one form submission.

    Errors block the mutation; warnings are shown but do not block.
    """

    subject: str = Field(
        ...,
        description="What was validated (event, cost_item, task)"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def errors_for(self, field: str) -> list[str]:
        """Error messages for one form field, for inline display."""
        return [
            issue.message
            for issue in self.issues
            if issue.field == field and issue.severity == "error"
        ]

    def user_message(self) -> str:
        """All error messages, one per line."""
        return "\n".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )
