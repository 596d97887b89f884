"""
Collection Subscription Manager

Owns the live subscription for each logical collection and turns raw
store snapshots into the ordered, normalized arrays observers render.

DESIGN DECISION: Latency over consistency. Observers are called on every
emission, cache-only ones included, so they always show the freshest
locally-known state and are called again when the server confirms or
revises it. An observer may therefore see a record appear, briefly see a
superseded version, then the converged one. No snapshot isolation is
offered.

Each subscription is a task consuming the store's async stream. The
handle returned by subscribe() cancels that task; nothing polls.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import structlog

from household_ledger.audit import SyncAuditLogger
from household_ledger.models.defaults import DEFAULT_CATEGORIES
from household_ledger.models.events import SyncEventBuilder
from household_ledger.models.records import Category, CollectionKind, Snapshot
from household_ledger.services.store import (
    DocumentStoreInterface,
    ErrorKind,
    OrderBy,
    StoreSnapshot,
    classify_error,
)
from household_ledger.sync.normalizer import normalize_record
from household_ledger.sync.ordering import sort_transactions


logger = structlog.get_logger(__name__)

Observer = Callable[[list[Any]], Union[None, Awaitable[None]]]

# Only transactions are ordered by the store; the others come unordered.
STORE_ORDERING: dict[CollectionKind, Optional[OrderBy]] = {
    CollectionKind.TRANSACTIONS: OrderBy(field="timestamp", descending=True),
    CollectionKind.USERS: None,
    CollectionKind.CATEGORIES: None,
}


class SubscriptionHandle:
    """
    Returned by SubscriptionManager.subscribe().

    Calling unsubscribe() guarantees the observer is not called again.
    It is idempotent and safe to call from inside the observer.
    """

    def __init__(self, kind: CollectionKind):
        self.kind = kind
        self.error: Optional[BaseException] = None
        self.error_kind: Optional[ErrorKind] = None
        self.deliveries = 0
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> bool:
        return not self._closed and self._task is not None and not self._task.done()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    __call__ = unsubscribe

    async def wait_closed(self) -> None:
        """Wait until the subscription task has fully finished."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)


class SubscriptionManager:
    """
    Live, normalized, ordered views of the three collections.

    Args:
        store: The remote document store.
        audit_logger: Operator channel for failures.
        fallback_categories: Delivered in place of an empty categories
            collection (never written; seeding is a separate concern).
            Pass an empty sequence to disable the substitution.
        prefetch: Issue a best-effort one-shot read before each live query.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[SyncAuditLogger] = None,
        fallback_categories: Optional[Sequence[Category]] = None,
        prefetch: bool = True,
    ):
        self._store = store
        self._audit = audit_logger or SyncAuditLogger()
        self._fallback_categories = tuple(
            DEFAULT_CATEGORIES if fallback_categories is None else fallback_categories
        )
        self._prefetch = prefetch
        self._last: dict[CollectionKind, Snapshot] = {}
        self._handles: list[SubscriptionHandle] = []

    def subscribe(self, kind: CollectionKind, observer: Observer) -> SubscriptionHandle:
        """
        Start delivering ``kind`` to ``observer``.

        Must be called from a running event loop. The observer gets a
        fresh list on every emission; it may be a plain function or a
        coroutine function (awaited before the next emission).
        """
        handle = SubscriptionHandle(kind)
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, observer),
            name=f"subscription:{kind.value}",
        )
        self._handles.append(handle)
        handle._task.add_done_callback(lambda _: self._discard(handle))
        return handle

    def last_snapshot(self, kind: CollectionKind) -> Optional[Snapshot]:
        """The most recent snapshot delivered for ``kind``, if any."""
        return self._last.get(kind)

    @property
    def handles(self) -> list[SubscriptionHandle]:
        """Subscriptions whose task has not finished yet."""
        return list(self._handles)

    def unsubscribe_all(self) -> None:
        for handle in list(self._handles):
            handle.unsubscribe()

    def _discard(self, handle: SubscriptionHandle) -> None:
        if handle in self._handles:
            self._handles.remove(handle)

    async def _run(self, handle: SubscriptionHandle, observer: Observer) -> None:
        kind = handle.kind
        if self._prefetch:
            await self._prefetch_once(kind)

        stream = self._store.watch(kind.value, STORE_ORDERING[kind])
        self._audit.log(SyncEventBuilder.subscription_opened(kind.value))
        try:
            async for raw in stream:
                if handle.closed:
                    break
                snapshot = self.materialize(kind, raw)
                self._last[kind] = snapshot
                await self._deliver(handle, observer, snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_kind = classify_error(e)
            handle.error = e
            handle.error_kind = error_kind
            self._audit.log(
                SyncEventBuilder.subscription_failed(kind.value, error_kind.value, str(e))
            )
        finally:
            await stream.aclose()
            self._audit.log(
                SyncEventBuilder.subscription_closed(kind.value, handle.deliveries)
            )

    async def _prefetch_once(self, kind: CollectionKind) -> None:
        """Warm read from the server. Failures are logged, never surfaced."""
        try:
            documents = await self._store.read_once(kind.value, STORE_ORDERING[kind])
            logger.debug("prefetch_completed", collection=kind.value, count=len(documents))
        except Exception as e:
            self._audit.log(
                SyncEventBuilder.prefetch_failed(kind.value, classify_error(e).value, str(e))
            )

    async def _deliver(
        self,
        handle: SubscriptionHandle,
        observer: Observer,
        snapshot: Snapshot,
    ) -> None:
        if handle.closed:
            return
        handle.deliveries += 1
        if snapshot.from_cache:
            logger.debug(
                "snapshot_from_cache",
                collection=snapshot.kind.value,
                count=len(snapshot.records),
                pending_writes=snapshot.has_pending_writes,
            )
        try:
            result = observer(list(snapshot.records))
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A broken observer must not kill the subscription.
            logger.error(
                "observer_failed",
                collection=snapshot.kind.value,
                error=str(e),
                exc_info=True,
            )

    def materialize(self, kind: CollectionKind, raw: StoreSnapshot) -> Snapshot:
        """
        Normalize and order one raw store snapshot.

        The store key always wins over any ``id`` field inside the
        document. A document that fails normalization for any reason is
        skipped and reported; it never ends the subscription.
        """
        records = []
        for document in raw.documents:
            try:
                records.append(normalize_record(kind, {**document.data, "id": document.id}))
            except Exception as e:
                self._audit.log(
                    SyncEventBuilder.record_skipped(kind.value, document.id, str(e))
                )

        if kind == CollectionKind.TRANSACTIONS:
            records = sort_transactions(records)

        substituted = False
        if kind == CollectionKind.CATEGORIES and not records and self._fallback_categories:
            records = list(self._fallback_categories)
            substituted = True

        return Snapshot(
            kind=kind,
            records=tuple(records),
            from_cache=raw.from_cache,
            has_pending_writes=raw.has_pending_writes,
            substituted=substituted,
        )
