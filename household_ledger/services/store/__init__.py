"""
Document Store Package

Provides the abstract store interface, the failure taxonomy, and two
implementations: an in-memory local-first store and Cloud Firestore.
The Firestore backend is imported lazily so the SDK is only loaded
when it is actually used.
"""

from household_ledger.services.store.interface import (
    DocumentStoreInterface,
    ErrorKind,
    OrderBy,
    PermissionDeniedError,
    StorageError,
    StoreSnapshot,
    StoredDocument,
    UnavailableError,
    classify_error,
)
from household_ledger.services.store.memory import InMemoryDocumentStore

__all__ = [
    # Interface
    "DocumentStoreInterface",
    "OrderBy",
    "StoreSnapshot",
    "StoredDocument",
    # Errors
    "ErrorKind",
    "PermissionDeniedError",
    "StorageError",
    "UnavailableError",
    "classify_error",
    # Implementations
    "InMemoryDocumentStore",
]
