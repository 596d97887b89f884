"""
Abstract Document Store Interface

DESIGN DECISION: We define an abstract interface for the remote store.
This allows us to:
1. Run against Cloud Firestore in production
2. Use the in-memory local-first store for testing and offline use
3. Keep the sync engine decoupled from any vendor SDK

The interface mirrors the primitives a document store offers: live
snapshots of a collection, store-keyed and caller-keyed writes, deletes,
and one-shot reads. Nothing more.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderBy(BaseModel):
    """Ordering requested from the store for a live query."""
    model_config = ConfigDict(frozen=True)

    field: str
    descending: bool = False


class StoredDocument(BaseModel):
    """A raw document: its store key plus whatever fields are stored."""
    model_config = ConfigDict(frozen=True)

    id: str
    data: dict[str, Any] = Field(default_factory=dict)


class StoreSnapshot(BaseModel):
    """
    One emission of a live query, in store delivery order.
    """
    model_config = ConfigDict(frozen=True)

    documents: list[StoredDocument] = Field(default_factory=list)
    from_cache: bool = False
    has_pending_writes: bool = False


class DocumentStoreInterface(ABC):
    """
    Abstract interface for the remote document store.

    Any store implementation (Firestore, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def watch(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> AsyncIterator[StoreSnapshot]:
        """
        Open a live query on a collection.

        Implemented as an async generator that yields a StoreSnapshot on
        every change and never finishes on its own. Closing the generator
        (or cancelling the task consuming it) detaches the listener.

        Raises:
            StorageError: When the listener fails; iteration ends
        """
        pass

    @abstractmethod
    async def write_new(self, collection: str, fields: dict[str, Any]) -> str:
        """
        Create a document under a store-assigned key.

        Returns:
            The generated key
        """
        pass

    @abstractmethod
    async def write_at(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        """
        Create or fully overwrite the document at a caller-chosen key.
        """
        pass

    @abstractmethod
    async def delete_at(self, collection: str, doc_id: str) -> None:
        """
        Remove a document. Deleting a missing key is not an error.
        """
        pass

    @abstractmethod
    async def read_once(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> list[StoredDocument]:
        """
        One-shot read of a whole collection from the server.
        """
        pass


class ErrorKind(str, Enum):
    """Failure taxonomy shared by reads and writes."""
    PERMISSION_DENIED = "permission-denied"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


class StorageError(Exception):
    """Base exception for storage operations."""

    kind = ErrorKind.OTHER

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.collection = collection
        self.operation = operation
        super().__init__(message)


class PermissionDeniedError(StorageError):
    """The store's access rules rejected the operation."""

    kind = ErrorKind.PERMISSION_DENIED


class UnavailableError(StorageError):
    """The store could not be reached (transient outage)."""

    kind = ErrorKind.UNAVAILABLE


_PERMISSION_CODES = {"permission-denied", "permission_denied", "403"}
_UNAVAILABLE_CODES = {"unavailable", "503", "deadline-exceeded", "deadline_exceeded"}


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map any exception onto the failure taxonomy.

    Understands our own StorageError subclasses and foreign exceptions
    that expose a ``code`` attribute (string, grpc status or HTTP number).
    """
    if isinstance(exc, StorageError):
        return exc.kind

    code = getattr(exc, "code", None)
    if code is None:
        return ErrorKind.OTHER
    if callable(code):
        try:
            code = code()
        except Exception:
            return ErrorKind.OTHER
    # grpc.StatusCode members carry their name
    code = getattr(code, "name", code)

    normalized = str(code).strip().lower()
    if normalized in _PERMISSION_CODES:
        return ErrorKind.PERMISSION_DENIED
    if normalized in _UNAVAILABLE_CODES:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.OTHER
