"""
Bootstrap / Seeding Coordinator

Populates default records the first time a collection is seen empty.

DESIGN DECISION: "Seed once per process" lives in an explicit SeedState
owned by the caller, not in module globals, so tests (and a future
multi-tenant host) can create or reset it at will.

Seeding is best-effort and non-transactional:
- categories: one existence read at startup, then each default written
  independently; a partial failure leaves a subset seeded, no rollback
- users: triggered by an empty live snapshot; the default member is
  shown optimistically while its write is in flight

Two processes may both see "empty" and both seed. That race is accepted:
every default has a content-derived key, so the second write is an
overwrite with identical content, never a duplicate record.
"""

import inspect
from typing import Optional, Sequence, Union

from household_ledger.audit import SyncAuditLogger
from household_ledger.models.defaults import DEFAULT_CATEGORIES, DEFAULT_USERS
from household_ledger.models.events import SyncEventBuilder
from household_ledger.models.records import (
    Category,
    CollectionKind,
    ConfirmedView,
    OptimisticView,
    User,
)
from household_ledger.services.store import DocumentStoreInterface, classify_error
from household_ledger.sync.manager import Observer
from household_ledger.sync.writer import WritePipeline


class SeedState:
    """
    Which collections this process has already tried to seed.

    A flag is set when an attempt starts, success or not: a failed seed
    is only retried by a fresh SeedState (i.e. the next restart). The
    users flag is cleared again once members are confirmed present, so a
    collection emptied later (last member deleted) is seeded again.
    """

    def __init__(self) -> None:
        self.users_seeded = False
        self.categories_seeded = False

    def reset(self) -> None:
        self.users_seeded = False
        self.categories_seeded = False


class BootstrapCoordinator:
    """
    Seeds default users and categories.

    Args:
        writer: Write pipeline used for every seed write.
        store: Read access for the startup existence check.
        state: Once-per-process flags, owned by the caller.
        default_users: Written (first one only) when users are empty.
        default_categories: Written when categories are empty.
    """

    def __init__(
        self,
        writer: WritePipeline,
        store: DocumentStoreInterface,
        state: Optional[SeedState] = None,
        audit_logger: Optional[SyncAuditLogger] = None,
        default_users: Sequence[User] = DEFAULT_USERS,
        default_categories: Sequence[Category] = DEFAULT_CATEGORIES,
    ):
        self._writer = writer
        self._store = store
        self.state = state or SeedState()
        self._audit = audit_logger or SyncAuditLogger()
        self._default_users = tuple(default_users)
        self._default_categories = tuple(default_categories)
        self._users_view: Union[ConfirmedView, OptimisticView] = ConfirmedView()

    @property
    def users_view(self) -> Union[ConfirmedView, OptimisticView]:
        """What the display should currently show for members."""
        return self._users_view

    async def seed_categories(self) -> list[str]:
        """
        Write the default categories if the collection is empty.

        Runs at most once per SeedState. Never raises: failures are
        reported on the operator channel only.

        Returns:
            Ids of the categories written by this call.
        """
        collection = CollectionKind.CATEGORIES.value
        if self.state.categories_seeded:
            self._audit.log(SyncEventBuilder.seed_skipped(collection, "already attempted"))
            return []
        self.state.categories_seeded = True

        try:
            existing = await self._store.read_once(collection)
        except Exception as e:
            self._audit.log(
                SyncEventBuilder.seed_failed(collection, None, classify_error(e).value, str(e))
            )
            return []

        if existing:
            self._audit.log(
                SyncEventBuilder.seed_skipped(collection, f"{len(existing)} record(s) present")
            )
            return []

        written = []
        for category in self._default_categories:
            try:
                await self._writer.save_category(category)
                written.append(category.id)
            except Exception as e:
                self._audit.log(
                    SyncEventBuilder.seed_failed(
                        collection, category.id, classify_error(e).value, str(e)
                    )
                )

        self._audit.log(SyncEventBuilder.seed_completed(collection, written))
        return written

    async def handle_users(
        self,
        users: list[User],
        observer: Optional[Observer] = None,
    ) -> list[User]:
        """
        Process one users emission and return the list to display.

        A non-empty emission is taken as confirmed. The first empty one
        (per SeedState) shows the default member straight away, through
        ``observer`` when given, then writes it. An optimistic view
        survives later empty emissions until the store catches up; if
        the write fails it is rolled back to an empty confirmed view.
        """
        collection = CollectionKind.USERS.value

        if users:
            self._users_view = ConfirmedView(records=users)
            self.state.users_seeded = False
            return users

        if isinstance(self._users_view, OptimisticView):
            # Still waiting for the seed write to show up.
            return list(self._users_view.records)

        if self.state.users_seeded or not self._default_users:
            self._users_view = ConfirmedView()
            return []

        self.state.users_seeded = True
        default_user = self._default_users[0]
        self._users_view = OptimisticView(
            records=[default_user],
            pending_write_id=default_user.id,
        )
        if observer is not None:
            await _call(observer, [default_user])

        try:
            await self._writer.save_user(default_user)
        except Exception as e:
            self._audit.log(
                SyncEventBuilder.seed_failed(
                    collection, default_user.id, classify_error(e).value, str(e)
                )
            )
            self._audit.log(SyncEventBuilder.optimistic_rollback(collection, default_user.id))
            self._users_view = ConfirmedView()
            return []

        self._audit.log(SyncEventBuilder.seed_completed(collection, [default_user.id]))
        return [default_user]

    def users_observer(self, observer: Observer) -> Observer:
        """
        Wrap a display observer so empty member lists trigger seeding.

        The wrapped observer receives the default member immediately,
        and an empty list if that optimistic state is rolled back.
        """
        async def deliver(users: list[User]) -> None:
            shown_optimistic = not users and self._will_seed_users()
            visible = await self.handle_users(users, observer if shown_optimistic else None)
            if shown_optimistic and visible:
                # Already delivered before the write was issued.
                return
            await _call(observer, visible)

        return deliver

    def _will_seed_users(self) -> bool:
        return (
            not self.state.users_seeded
            and bool(self._default_users)
            and not isinstance(self._users_view, OptimisticView)
        )


async def _call(observer: Observer, records: list) -> None:
    result = observer(list(records))
    if inspect.isawaitable(result):
        await result
