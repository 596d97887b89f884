"""
In-Memory Local-First Document Store

DESIGN DECISION: The in-memory store behaves like a document store with a
local cache in front of it, rather than like a plain dict:
1. A new live query first emits the cached state, then the server's
2. Every write emits a latency-compensated snapshot flagged as pending,
   then the confirmed one
3. Overwrites keep the document's original delivery position

This makes the cache-then-server delivery sequence, and the failure
paths, reproducible in tests without a network. Several sync clients may
share one store to play the part of independent process instances.
"""

import asyncio
import math
from collections import defaultdict
from typing import Any, AsyncIterator, Optional
from uuid import uuid4

from household_ledger.services.store.interface import (
    DocumentStoreInterface,
    OrderBy,
    StoreSnapshot,
    StoredDocument,
)


OPERATIONS = ("watch", "write_new", "write_at", "delete_at", "read_once")


class _Watcher:
    """One live query: its ordering and the queue its snapshots land in."""

    def __init__(self, order_by: Optional[OrderBy]):
        self.order_by = order_by
        self.queue: asyncio.Queue = asyncio.Queue()


def _order_key(data: dict[str, Any], field: str) -> tuple[int, Any]:
    """
    Rank values by type first, the way Firestore orders mixed types:
    missing < null < bool < number < string < bytes < anything else.
    """
    if field not in data:
        return (0, 0)
    value = data[field]
    if value is None:
        return (1, 0)
    if isinstance(value, bool):
        return (2, value)
    if isinstance(value, (int, float)):
        # NaN sorts before every other number
        return (3, float("-inf") if math.isnan(value) else value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, bytes):
        return (5, value)
    return (6, repr(value))


def _apply_order(
    documents: list[StoredDocument],
    order_by: Optional[OrderBy],
) -> list[StoredDocument]:
    if order_by is None:
        return documents
    return sorted(
        documents,
        key=lambda doc: _order_key(doc.data, order_by.field),
        reverse=order_by.descending,
    )


class InMemoryDocumentStore(DocumentStoreInterface):
    """
    Local-first document store held in process memory.

    Args:
        latency: Seconds between a write's pending snapshot and its
                 confirmation. Zero still yields to the event loop once.
    """

    def __init__(self, latency: float = 0.0):
        self._latency = latency
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._watchers: dict[str, list[_Watcher]] = defaultdict(list)
        self._faults: dict[str, list[BaseException]] = defaultdict(list)
        # (operation, collection, doc_id) for every committed mutation
        self.operation_log: list[tuple[str, str, str]] = []

    def fail_next(self, operation: str, error: BaseException) -> None:
        """Make the next call of ``operation`` raise ``error``."""
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        self._faults[operation].append(error)

    def break_watchers(self, collection: str, error: BaseException) -> None:
        """Terminate every live query on a collection with ``error``."""
        for watcher in list(self._watchers[collection]):
            watcher.queue.put_nowait(error)

    def _raise_pending_fault(self, operation: str) -> None:
        faults = self._faults.get(operation)
        if faults:
            raise faults.pop(0)

    def documents(self, collection: str) -> list[StoredDocument]:
        """Current contents in delivery order."""
        return [
            StoredDocument(id=doc_id, data=dict(data))
            for doc_id, data in self._collections[collection].items()
        ]

    def watcher_count(self, collection: str) -> int:
        return len(self._watchers[collection])

    def put_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """
        Store a document as if another client had written it.

        Bypasses fault injection; watchers receive a confirmed snapshot.
        """
        self._collections[collection][doc_id] = dict(data)
        self._notify(collection, from_cache=False, has_pending_writes=False)

    async def watch(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> AsyncIterator[StoreSnapshot]:
        self._raise_pending_fault("watch")
        watcher = _Watcher(order_by)
        self._watchers[collection].append(watcher)
        try:
            watcher.queue.put_nowait(
                self._build(collection, order_by, from_cache=True, has_pending_writes=False)
            )
            watcher.queue.put_nowait(
                self._build(collection, order_by, from_cache=False, has_pending_writes=False)
            )
            while True:
                item = await watcher.queue.get()
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self._watchers[collection].remove(watcher)

    async def write_new(self, collection: str, fields: dict[str, Any]) -> str:
        self._raise_pending_fault("write_new")
        doc_id = uuid4().hex[:20]
        await self._commit("write_new", collection, doc_id, fields)
        return doc_id

    async def write_at(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        self._raise_pending_fault("write_at")
        await self._commit("write_at", collection, doc_id, fields)

    async def delete_at(self, collection: str, doc_id: str) -> None:
        self._raise_pending_fault("delete_at")
        self._collections[collection].pop(doc_id, None)
        self.operation_log.append(("delete_at", collection, doc_id))
        await self._propagate(collection)

    async def read_once(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> list[StoredDocument]:
        self._raise_pending_fault("read_once")
        # The answer reflects the state when the request was made.
        documents = _apply_order(self.documents(collection), order_by)
        await asyncio.sleep(self._latency)
        return documents

    async def _commit(
        self,
        operation: str,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        # Plain assignment keeps an existing key's position.
        self._collections[collection][doc_id] = dict(fields)
        self.operation_log.append((operation, collection, doc_id))
        await self._propagate(collection)

    async def _propagate(self, collection: str) -> None:
        """Emit the latency-compensated snapshot, then the confirmed one."""
        self._notify(collection, from_cache=True, has_pending_writes=True)
        await asyncio.sleep(self._latency)
        self._notify(collection, from_cache=False, has_pending_writes=False)

    def _notify(self, collection: str, from_cache: bool, has_pending_writes: bool) -> None:
        for watcher in list(self._watchers[collection]):
            watcher.queue.put_nowait(
                self._build(collection, watcher.order_by, from_cache, has_pending_writes)
            )

    def _build(
        self,
        collection: str,
        order_by: Optional[OrderBy],
        from_cache: bool,
        has_pending_writes: bool,
    ) -> StoreSnapshot:
        return StoreSnapshot(
            documents=_apply_order(self.documents(collection), order_by),
            from_cache=from_cache,
            has_pending_writes=has_pending_writes,
        )
