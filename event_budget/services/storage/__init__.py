"""
Storage Services Package

Provides the abstract store interfaces and their in-memory implementations.
State is per session; nothing is persisted across restarts.
"""

from event_budget.services.storage.interface import (
    SHARED_POOL,
    AuditTrailInterface,
    CostOwner,
    CostPool,
    EventStoreInterface,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from event_budget.services.storage.memory import (
    InMemoryAuditTrail,
    InMemoryEventStore,
    seed_snapshot,
)

__all__ = [
    # Interfaces
    "AuditTrailInterface",
    "EventStoreInterface",
    "CostOwner",
    "CostPool",
    "SHARED_POOL",
    # Exceptions
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditTrail",
    "InMemoryEventStore",
    "seed_snapshot",
]
