"""
Data Models Package

This package contains all Pydantic models used by the sync engine.
Every record delivered to an observer conforms to these schemas.
"""

from household_ledger.models.records import (
    Category,
    CollectionKind,
    ConfirmedView,
    OptimisticView,
    PaymentMethod,
    Snapshot,
    Transaction,
    TransactionDraft,
    User,
    UsersView,
    category_key,
)
from household_ledger.models.defaults import (
    DEFAULT_CATEGORIES,
    DEFAULT_USER,
    DEFAULT_USERS,
    USER_COLORS,
)
from household_ledger.models.events import (
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncSeverity,
)

__all__ = [
    # Records
    "Category",
    "CollectionKind",
    "ConfirmedView",
    "OptimisticView",
    "PaymentMethod",
    "Snapshot",
    "Transaction",
    "TransactionDraft",
    "User",
    "UsersView",
    "category_key",
    # Defaults
    "DEFAULT_CATEGORIES",
    "DEFAULT_USER",
    "DEFAULT_USERS",
    "USER_COLORS",
    # Sync events
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
    "SyncSeverity",
]
