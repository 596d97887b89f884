"""Services package."""

from household_ledger.services.store import (
    DocumentStoreInterface,
    ErrorKind,
    InMemoryDocumentStore,
    OrderBy,
    PermissionDeniedError,
    StorageError,
    StoreSnapshot,
    StoredDocument,
    UnavailableError,
    classify_error,
)

__all__ = [
    "DocumentStoreInterface",
    "ErrorKind",
    "InMemoryDocumentStore",
    "OrderBy",
    "PermissionDeniedError",
    "StorageError",
    "StoreSnapshot",
    "StoredDocument",
    "UnavailableError",
    "classify_error",
]
