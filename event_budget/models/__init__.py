"""
Data Models Package

This package contains all Pydantic models used in the Event Budget Dashboard.
All data flowing through the system must conform to these schemas.
"""

from event_budget.models.event import (
    BudgetHealth,
    ChartBar,
    CostItem,
    EventData,
    EventFinancials,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    StoreSnapshot,
    Task,
    TaskStatus,
    ValidationIssue,
    ValidationResult,
    new_id,
)
from event_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Event models
    "BudgetHealth",
    "ChartBar",
    "CostItem",
    "EventData",
    "EventFinancials",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_NAME_LENGTH",
    "StoreSnapshot",
    "Task",
    "TaskStatus",
    "ValidationIssue",
    "ValidationResult",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
