"""
Cloud Firestore Store Implementation

DESIGN DECISION: Firestore is the production remote store because:
1. It pushes live query snapshots, so no polling loop is needed
2. Documents map one-to-one onto our records
3. Several household members can share one project
4. Access rules live server-side

TRADEOFFS:
- The Python SDK is blocking; calls run in a worker thread
- Snapshot callbacks arrive on an SDK thread and are handed to the
  event loop with call_soon_threadsafe
- The server SDK keeps no local cache, so every snapshot it emits is
  server-confirmed (from_cache=False, has_pending_writes=False)

The implementation follows the abstract interface, so the sync engine
never imports the SDK directly.
"""

import asyncio
import threading
from contextlib import contextmanager
from typing import Any, AsyncIterator, Iterator, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from household_ledger.config import FirestoreSettings, get_settings
from household_ledger.services.store.interface import (
    DocumentStoreInterface,
    OrderBy,
    PermissionDeniedError,
    StorageError,
    StoreSnapshot,
    StoredDocument,
    UnavailableError,
)


SCOPES = ["https://www.googleapis.com/auth/datastore"]


@contextmanager
def _translate_errors(collection: str, operation: str) -> Iterator[None]:
    """Re-raise SDK exceptions as our storage taxonomy."""
    try:
        yield
    except (gexc.PermissionDenied, gexc.Forbidden, gexc.Unauthenticated) as e:
        raise PermissionDeniedError(str(e), collection, operation) from e
    except (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.RetryError) as e:
        raise UnavailableError(str(e), collection, operation) from e
    except gexc.GoogleAPICallError as e:
        raise StorageError(str(e), collection, operation) from e


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[FirestoreSettings] = None):
        self._client: Optional[firestore.Client] = None
        self._settings = settings or get_settings().firestore
        self._lock = threading.Lock()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.Client:
        """
        Establish the Firestore client.

        Uses service account credentials when a path is configured,
        application default credentials otherwise. Blocking (including
        the backoff between attempts): only call it from a worker thread.
        """
        with self._lock:
            return self._connect_locked()

    def _connect_locked(self) -> firestore.Client:
        if self._client is None:
            try:
                credentials = None
                if self._settings.credentials_path:
                    credentials = Credentials.from_service_account_file(
                        self._settings.credentials_path,
                        scopes=SCOPES,
                    )
                self._client = firestore.Client(
                    project=self._settings.project_id,
                    credentials=credentials,
                    database=self._settings.database,
                )
            except FileNotFoundError:
                raise UnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise UnavailableError(f"Failed to connect to Firestore: {e}")

        return self._client


class FirestoreDocumentStore(DocumentStoreInterface):
    """
    Firestore implementation of the document store.

    One Firestore collection per logical collection, one document per record.
    Every SDK call, connecting included, runs in a worker thread so a slow
    or unreachable server never stalls the event loop.
    """

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    def _collection(self, collection: str):
        return self._client.connect().collection(collection)

    def _query(self, collection: str, order_by: Optional[OrderBy] = None):
        ref = self._collection(collection)
        if order_by is None:
            return ref
        direction = (
            firestore.Query.DESCENDING if order_by.descending else firestore.Query.ASCENDING
        )
        return ref.order_by(order_by.field, direction=direction)

    @staticmethod
    def _to_stored(doc) -> StoredDocument:
        return StoredDocument(id=doc.id, data=doc.to_dict() or {})

    async def watch(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> AsyncIterator[StoreSnapshot]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        # Called on an SDK thread.
        def on_snapshot(docs, changes, read_time) -> None:
            snapshot = StoreSnapshot(documents=[self._to_stored(doc) for doc in docs])
            loop.call_soon_threadsafe(queue.put_nowait, snapshot)

        def listen():
            return self._query(collection, order_by).on_snapshot(on_snapshot)

        with _translate_errors(collection, "watch"):
            listener = await asyncio.to_thread(listen)
        try:
            while True:
                yield await queue.get()
        finally:
            listener.unsubscribe()

    async def write_new(self, collection: str, fields: dict[str, Any]) -> str:
        def add():
            _, ref = self._collection(collection).add(fields)
            return ref.id

        with _translate_errors(collection, "write_new"):
            return await asyncio.to_thread(add)

    async def write_at(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        def set_document():
            self._collection(collection).document(doc_id).set(fields)

        with _translate_errors(collection, "write_at"):
            await asyncio.to_thread(set_document)

    async def delete_at(self, collection: str, doc_id: str) -> None:
        def delete_document():
            self._collection(collection).document(doc_id).delete()

        with _translate_errors(collection, "delete_at"):
            await asyncio.to_thread(delete_document)

    async def read_once(
        self,
        collection: str,
        order_by: Optional[OrderBy] = None,
    ) -> list[StoredDocument]:
        def get():
            return self._query(collection, order_by).get()

        with _translate_errors(collection, "read_once"):
            docs = await asyncio.to_thread(get)
        return [self._to_stored(doc) for doc in docs]
