"""
Main Orchestrator for Household Ledger

This module ties the sync engine together and defines the startup flow:
1. Subscribe (open live subscriptions for all three collections)
2. Seed (write default categories if the collection is empty)
3. Serve (observers re-render on every emission, writes go through
   the write pipeline, the store re-emits)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Observers never get a store handle, only arrays of records
- Every mutation goes through the WritePipeline
- Seeding failures are reported on the operator channel and never
  block startup

This is the "glue" a display layer talks to.
"""

from typing import Optional

import structlog

from household_ledger.audit import SyncAuditLogger, configure_logging
from household_ledger.config import (
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)
from household_ledger.models.records import CollectionKind
from household_ledger.services.store import DocumentStoreInterface, InMemoryDocumentStore
from household_ledger.sync.bootstrap import BootstrapCoordinator, SeedState
from household_ledger.sync.manager import Observer, SubscriptionHandle, SubscriptionManager
from household_ledger.sync.writer import WritePipeline


logger = structlog.get_logger(__name__)


class LedgerSync:
    """
    One running sync engine over one store.

    Flow:
    1. start() → subscribe transactions, users (through the bootstrap
       wrapper) and categories
    2. start() → one-shot category existence check and seeding
    3. stop() → cancel every subscription

    Args:
        store: The remote document store.
        seed_state: Once-per-process seeding flags; pass the same object
            to a second LedgerSync to share them.
        audit_logger: Operator channel shared by every component.
        settings: Sync behaviour flags (defaults from the environment).
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        seed_state: Optional[SeedState] = None,
        audit_logger: Optional[SyncAuditLogger] = None,
        settings: Optional[SyncSettings] = None,
    ):
        self._settings = settings or get_settings().sync
        self.store = store
        self.audit_logger = audit_logger or SyncAuditLogger(
            history_size=self._settings.event_history_size
        )

        self.writer = WritePipeline(store, self.audit_logger)
        self.manager = SubscriptionManager(
            store,
            self.audit_logger,
            fallback_categories=None if self._settings.substitute_default_categories else (),
            prefetch=self._settings.prefetch_on_subscribe,
        )
        self.bootstrap = BootstrapCoordinator(
            self.writer,
            store,
            state=seed_state,
            audit_logger=self.audit_logger,
        )
        self._handles: dict[CollectionKind, SubscriptionHandle] = {}

    @property
    def running(self) -> bool:
        return bool(self._handles)

    async def start(
        self,
        on_transactions: Observer,
        on_users: Observer,
        on_categories: Observer,
    ) -> dict[CollectionKind, SubscriptionHandle]:
        """
        Open all subscriptions, then seed categories if enabled.

        Must be awaited from a running event loop.

        Returns:
            The subscription handle per collection.

        Raises:
            RuntimeError: If already started
        """
        if self._handles:
            raise RuntimeError("LedgerSync is already running")

        users_observer = (
            self.bootstrap.users_observer(on_users)
            if self._settings.seed_default_users
            else on_users
        )
        self._handles = {
            CollectionKind.TRANSACTIONS: self.manager.subscribe(
                CollectionKind.TRANSACTIONS, on_transactions
            ),
            CollectionKind.USERS: self.manager.subscribe(CollectionKind.USERS, users_observer),
            CollectionKind.CATEGORIES: self.manager.subscribe(
                CollectionKind.CATEGORIES, on_categories
            ),
        }
        logger.info("ledger_sync_started", collections=[k.value for k in self._handles])

        if self._settings.seed_default_categories:
            await self.bootstrap.seed_categories()

        return dict(self._handles)

    def stop(self) -> None:
        """Unsubscribe everything. Safe to call more than once."""
        if not self._handles:
            return
        for handle in self._handles.values():
            handle.unsubscribe()
        self.manager.unsubscribe_all()
        logger.info("ledger_sync_stopped")
        self._handles = {}

    async def aclose(self) -> None:
        """stop() and wait for the subscription tasks to finish."""
        handles = list(self._handles.values())
        self.stop()
        for handle in handles:
            await handle.wait_closed()

    async def __aenter__(self) -> "LedgerSync":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_app_components(settings: Optional[Settings] = None) -> LedgerSync:
    """
    Factory function to create the sync engine.

    Uses Cloud Firestore when it is configured, otherwise falls back to
    the in-memory store so the engine still runs (e.g. in development).

    Returns:
        A LedgerSync that has not been started yet.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.effective_log_level)

    checks = validate_all_settings(settings)
    logger.info(
        "settings_checked",
        environment=app_settings.app_environment,
        **checks,
    )

    store: DocumentStoreInterface
    if checks["firestore"]:
        # Imported here so the SDK is only loaded when Firestore is used.
        from household_ledger.services.store.firestore import (
            FirestoreClient,
            FirestoreDocumentStore,
        )

        store = FirestoreDocumentStore(FirestoreClient(settings.firestore))
    else:
        # Store not configured - continue with the in-memory store
        logger.warning(
            "firestore_not_configured",
            error=checks.get("firestore_error"),
            fallback="in-memory",
        )
        store = InMemoryDocumentStore()

    return LedgerSync(store, settings=settings.sync)
