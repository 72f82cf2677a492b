"""Services package."""

from event_budget.services.spreadsheet import (
    ImportResult,
    UnsupportedFileTypeError,
    WorkbookError,
    WorkbookFormatError,
    WorkbookTables,
)
from event_budget.services.storage import (
    SHARED_POOL,
    AuditTrailInterface,
    EventStoreInterface,
    InMemoryAuditTrail,
    InMemoryEventStore,
    InvalidInputError,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Spreadsheet services
    "ImportResult",
    "UnsupportedFileTypeError",
    "WorkbookError",
    "WorkbookFormatError",
    "WorkbookTables",
    # Storage services
    "SHARED_POOL",
    "AuditTrailInterface",
    "EventStoreInterface",
    "InMemoryAuditTrail",
    "InMemoryEventStore",
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
]
