"""Tests for default data seeding and the LedgerSync orchestrator."""

import asyncio

import pytest

from household_ledger.audit import SyncAuditLogger
from household_ledger.config import SyncSettings
from household_ledger.models import (
    DEFAULT_CATEGORIES,
    DEFAULT_USER,
    CollectionKind,
    ConfirmedView,
    OptimisticView,
    SyncEventType,
)
from household_ledger.orchestrator import LedgerSync
from household_ledger.services.store import InMemoryDocumentStore, UnavailableError
from household_ledger.sync import (
    BootstrapCoordinator,
    SeedState,
    SubscriptionManager,
    WritePipeline,
)


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_coordinator(store, state=None, audit=None):
    audit = audit or SyncAuditLogger()
    writer = WritePipeline(store, audit)
    return BootstrapCoordinator(writer, store, state=state, audit_logger=audit)


def count_writes(store, collection):
    return sum(
        1 for operation, name, _ in store.operation_log
        if operation == "write_at" and name == collection
    )


class TestCategorySeeding:
    """Tests for default category seeding."""

    def test_seeds_empty_collection(self):
        """Test that every default category is written to an empty store."""
        store = InMemoryDocumentStore()
        written = asyncio.run(make_coordinator(store).seed_categories())
        assert written == [c.id for c in DEFAULT_CATEGORIES]
        assert len(store.documents("categories")) == 8

    def test_runs_once_per_state(self):
        """Test that a second call with the same state does nothing."""
        store = InMemoryDocumentStore()
        coordinator = make_coordinator(store)

        async def scenario():
            first = await coordinator.seed_categories()
            second = await coordinator.seed_categories()
            return first, second

        first, second = asyncio.run(scenario())
        assert len(first) == 8
        assert second == []
        assert count_writes(store, "categories") == 8

    def test_existing_collection_is_left_alone(self):
        """Test that seeding an already-seeded store writes nothing more."""
        store = InMemoryDocumentStore()

        async def scenario():
            await make_coordinator(store).seed_categories()
            return await make_coordinator(store).seed_categories()

        assert asyncio.run(scenario()) == []
        assert len(store.documents("categories")) == 8
        assert count_writes(store, "categories") == 8

    def test_concurrent_seeding_does_not_duplicate(self):
        """Test two instances both seeing empty: eight records, not sixteen."""
        store = InMemoryDocumentStore()

        async def scenario():
            return await asyncio.gather(
                make_coordinator(store, SeedState()).seed_categories(),
                make_coordinator(store, SeedState()).seed_categories(),
            )

        first, second = asyncio.run(scenario())
        assert len(first) == len(second) == 8
        assert count_writes(store, "categories") == 16
        documents = store.documents("categories")
        assert len(documents) == 8
        assert {doc.id: doc.data for doc in documents} == {
            c.id: c.to_document() for c in DEFAULT_CATEGORIES
        }

    def test_partial_failure_is_logged_not_raised(self):
        """Test that one failed write leaves the rest seeded."""
        store = InMemoryDocumentStore()
        audit = SyncAuditLogger()
        store.fail_next("write_at", UnavailableError("offline"))

        written = asyncio.run(make_coordinator(store, audit=audit).seed_categories())

        assert len(written) == 7
        assert len(store.documents("categories")) == 7
        failed = audit.events_of_type(SyncEventType.SEED_FAILED)
        assert [event.record_id for event in failed] == [DEFAULT_CATEGORIES[0].id]

    def test_failed_check_is_not_retried(self):
        """Test that a failed existence read gives up until restart."""
        store = InMemoryDocumentStore()
        audit = SyncAuditLogger()
        state = SeedState()
        store.fail_next("read_once", UnavailableError("offline"))

        async def scenario():
            first = await make_coordinator(store, state, audit).seed_categories()
            second = await make_coordinator(store, state, audit).seed_categories()
            return first, second

        assert asyncio.run(scenario()) == ([], [])
        assert store.documents("categories") == []
        assert len(audit.events_of_type(SyncEventType.SEED_FAILED)) == 1

    def test_reset_state_allows_another_attempt(self):
        """Test that a reset SeedState behaves like a restart."""
        store = InMemoryDocumentStore()
        state = SeedState()
        store.fail_next("read_once", UnavailableError("offline"))

        async def scenario():
            await make_coordinator(store, state).seed_categories()
            state.reset()
            return await make_coordinator(store, state).seed_categories()

        assert len(asyncio.run(scenario())) == 8


class TestUserSeeding:
    """Tests for default member seeding."""

    def test_empty_users_show_default_immediately(self):
        """Test that the default member is shown and written exactly once."""
        async def scenario():
            store = InMemoryDocumentStore()
            coordinator = make_coordinator(store)
            manager = SubscriptionManager(store, prefetch=False)
            calls = []
            handle = manager.subscribe(
                CollectionKind.USERS, coordinator.users_observer(calls.append)
            )
            await settle()
            handle.unsubscribe()
            return calls, store, coordinator

        calls, store, coordinator = asyncio.run(scenario())
        assert calls
        assert all(call == [DEFAULT_USER] for call in calls)
        assert [doc.id for doc in store.documents("users")] == [DEFAULT_USER.id]
        assert count_writes(store, "users") == 1
        assert isinstance(coordinator.users_view, ConfirmedView)

    def test_existing_users_are_not_seeded(self):
        """Test that a non-empty collection triggers no write."""
        async def scenario():
            store = InMemoryDocumentStore()
            store.put_document("users", "u1", {"name": "Alex", "color": "#fff"})
            coordinator = make_coordinator(store)
            manager = SubscriptionManager(store, prefetch=False)
            calls = []
            handle = manager.subscribe(
                CollectionKind.USERS, coordinator.users_observer(calls.append)
            )
            await settle()
            handle.unsubscribe()
            return calls, store

        calls, store = asyncio.run(scenario())
        assert [[u.id for u in call] for call in calls] == [["u1"], ["u1"]]
        assert count_writes(store, "users") == 0

    def test_deleting_last_user_reseeds_one_default(self):
        """Test that an emptied collection gets exactly one default member again."""
        async def scenario():
            store = InMemoryDocumentStore()
            store.put_document("users", "u1", {"name": "Alex", "color": "#fff"})
            coordinator = make_coordinator(store)
            writer = WritePipeline(store)
            manager = SubscriptionManager(store, prefetch=False)
            calls = []
            handle = manager.subscribe(
                CollectionKind.USERS, coordinator.users_observer(calls.append)
            )
            await settle()

            await writer.delete_user("u1")
            await settle()
            handle.unsubscribe()
            return calls, store

        calls, store = asyncio.run(scenario())
        assert [] not in calls
        assert calls[-1] == [DEFAULT_USER]
        assert [doc.id for doc in store.documents("users")] == [DEFAULT_USER.id]
        assert count_writes(store, "users") == 1

    def test_failed_seed_rolls_back(self):
        """Test that a failed seed write withdraws the optimistic member."""
        async def scenario():
            store = InMemoryDocumentStore()
            store.fail_next("write_at", UnavailableError("offline"))
            audit = SyncAuditLogger()
            coordinator = make_coordinator(store, audit=audit)
            manager = SubscriptionManager(store, prefetch=False)
            calls = []
            handle = manager.subscribe(
                CollectionKind.USERS, coordinator.users_observer(calls.append)
            )
            await settle()
            handle.unsubscribe()
            return calls, store, audit, coordinator

        calls, store, audit, coordinator = asyncio.run(scenario())
        assert calls[0] == [DEFAULT_USER]
        assert calls[1:] == [[], []]
        assert store.documents("users") == []
        assert len(audit.events_of_type(SyncEventType.OPTIMISTIC_ROLLBACK)) == 1
        assert coordinator.users_view == ConfirmedView()
        assert coordinator.state.users_seeded is True

    def test_handle_users_views(self):
        """Test the tagged view while a seed write is outstanding."""
        store = InMemoryDocumentStore()
        coordinator = make_coordinator(store)
        seen = []

        def observer(users):
            seen.append(coordinator.users_view)

        visible = asyncio.run(coordinator.handle_users([], observer))

        assert visible == [DEFAULT_USER]
        assert isinstance(seen[0], OptimisticView)
        assert seen[0].pending_write_id == DEFAULT_USER.id
        assert isinstance(coordinator.users_view, OptimisticView)


class TestLedgerSync:
    """Tests for the orchestrator."""

    def test_start_subscribes_and_seeds(self):
        """Test a cold start against an empty store."""
        async def scenario():
            store = InMemoryDocumentStore()
            transactions, users, categories = [], [], []
            async with LedgerSync(store, settings=SyncSettings()) as ledger:
                handles = await ledger.start(transactions.append, users.append, categories.append)
                await settle()
                running = ledger.running
            return store, handles, running, ledger, transactions, users, categories

        store, handles, running, ledger, transactions, users, categories = asyncio.run(scenario())
        assert set(handles) == set(CollectionKind)
        assert running is True
        assert ledger.running is False
        assert all(handle.closed for handle in handles.values())
        assert transactions[-1] == []
        assert users[-1] == [DEFAULT_USER]
        assert categories[-1] == list(DEFAULT_CATEGORIES)
        assert len(store.documents("categories")) == 8
        assert len(store.documents("users")) == 1

    def test_seeding_can_be_disabled(self):
        """Test that the settings switch seeding and substitution off."""
        settings = SyncSettings(
            seed_default_users=False,
            seed_default_categories=False,
            substitute_default_categories=False,
            prefetch_on_subscribe=False,
        )

        async def scenario():
            store = InMemoryDocumentStore()
            users, categories = [], []
            ledger = LedgerSync(store, settings=settings)
            await ledger.start(lambda records: None, users.append, categories.append)
            await settle()
            await ledger.aclose()
            return store, users, categories

        store, users, categories = asyncio.run(scenario())
        assert users[-1] == []
        assert categories[-1] == []
        assert store.operation_log == []

    def test_double_start_is_refused(self):
        """Test that a running engine cannot be started again."""
        async def scenario():
            ledger = LedgerSync(InMemoryDocumentStore(), settings=SyncSettings())
            await ledger.start(lambda r: None, lambda r: None, lambda r: None)
            try:
                with pytest.raises(RuntimeError):
                    await ledger.start(lambda r: None, lambda r: None, lambda r: None)
            finally:
                ledger.stop()
                ledger.stop()

        asyncio.run(scenario())

    def test_two_instances_share_store(self):
        """Test two engines seeding one store concurrently."""
        async def scenario():
            store = InMemoryDocumentStore()
            first = LedgerSync(store, seed_state=SeedState(), settings=SyncSettings())
            second = LedgerSync(store, seed_state=SeedState(), settings=SyncSettings())
            noop = lambda records: None
            await asyncio.gather(
                first.start(noop, noop, noop),
                second.start(noop, noop, noop),
            )
            await settle()
            await first.aclose()
            await second.aclose()
            return store

        store = asyncio.run(scenario())
        assert len(store.documents("categories")) == 8
        assert len(store.documents("users")) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
