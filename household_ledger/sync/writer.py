"""
Write Pipeline

The only path through which records are mutated. Observers never write
back into the store; they call this module and wait for the next
snapshot.

Key policy per collection:
- transactions: store-assigned key, the caller never supplies one
- users: caller-chosen key, a fresh uuid4 for new members
- categories: caller-chosen key derived from the name (category_key)

Failure policy: no retries here. Store failures are rethrown as
PermissionDeniedError / UnavailableError carrying a message fit for the
user; anything unclassified passes through untouched.
"""

import time
from typing import Awaitable, Callable, Iterable, Optional, TypeVar
from uuid import uuid4

import structlog

from household_ledger.audit import SyncAuditLogger
from household_ledger.models.events import SyncEventBuilder
from household_ledger.models.records import (
    Category,
    CollectionKind,
    Transaction,
    TransactionDraft,
    User,
    category_key,
)
from household_ledger.queries.summary import count_category_references
from household_ledger.services.store import (
    DocumentStoreInterface,
    ErrorKind,
    PermissionDeniedError,
    StorageError,
    UnavailableError,
    classify_error,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CategoryInUseError(StorageError):
    """Refused to delete a category that transactions still reference."""

    def __init__(self, category_id: str, reference_count: int):
        self.category_id = category_id
        self.reference_count = reference_count
        super().__init__(
            f"Category '{category_id}' is used by {reference_count} transaction(s)",
            CollectionKind.CATEGORIES.value,
            "delete",
        )


def _now_millis() -> int:
    return int(time.time() * 1000)


class WritePipeline:
    """
    Create, update and delete records in the remote store.

    Args:
        store: The remote document store.
        audit_logger: Operator channel; every write outcome is recorded.
        clock: Returns the current epoch milliseconds (injectable for tests).
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[SyncAuditLogger] = None,
        clock: Callable[[], int] = _now_millis,
    ):
        self._store = store
        self._audit = audit_logger or SyncAuditLogger()
        self._clock = clock

    async def add_transaction(self, draft: TransactionDraft) -> str:
        """
        Create a transaction under a store-assigned key.

        The creation instant is stamped now unless the draft carries one.

        Returns:
            The new transaction's id.
        """
        created_at = draft.created_at if draft.created_at is not None else self._clock()
        return await self._execute(
            CollectionKind.TRANSACTIONS,
            "create",
            None,
            lambda: self._store.write_new(
                CollectionKind.TRANSACTIONS.value,
                draft.to_document(created_at),
            ),
        )

    async def add_user(self, name: str, color: str) -> User:
        """Create a member under a freshly generated key."""
        user = User(id=str(uuid4()), name=name, color=color)
        return await self.save_user(user)

    async def save_user(self, user: User) -> User:
        """Upsert a member at its own id (existing id = overwrite)."""
        await self._execute(
            CollectionKind.USERS,
            "upsert",
            user.id,
            lambda: self._store.write_at(
                CollectionKind.USERS.value, user.id, user.to_document()
            ),
        )
        return user

    async def add_category(
        self,
        name: str,
        label: str,
        color: str,
        icon: Optional[str] = None,
    ) -> Category:
        """
        Create a category keyed by its normalized name.

        The normalized name is also what is stored as ``name``, so the
        record's id and name are always equal; ``label`` keeps the
        display spelling. Uniqueness is the caller's responsibility: an
        existing key is overwritten.
        """
        key = category_key(name)
        category = Category(
            id=key,
            name=key,
            label=label,
            color=color,
            icon=icon,
        )
        return await self.save_category(category)

    async def save_category(self, category: Category) -> Category:
        """Upsert a category at its own id (full overwrite)."""
        await self._execute(
            CollectionKind.CATEGORIES,
            "upsert",
            category.id,
            lambda: self._store.write_at(
                CollectionKind.CATEGORIES.value, category.id, category.to_document()
            ),
        )
        return category

    async def update_category(self, category: Category) -> Category:
        """
        Replace a category at its existing id.

        No merge: the stored document becomes exactly ``category``, so
        callers must always pass the complete record.
        """
        return await self.save_category(category)

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._delete(CollectionKind.TRANSACTIONS, transaction_id)

    async def delete_user(self, user_id: str) -> None:
        """Remove a member. Their transactions are left in place."""
        await self._delete(CollectionKind.USERS, user_id)

    async def delete_category(self, category_id: str) -> None:
        """Remove a category unconditionally. See delete_unused_category."""
        await self._delete(CollectionKind.CATEGORIES, category_id)

    async def delete_unused_category(
        self,
        category: Category,
        transactions: Iterable[Transaction],
    ) -> None:
        """
        Remove a category only if no transaction references it.

        The check runs against the caller's full transaction list, not
        the store, so it is only as fresh as that list.

        Raises:
            CategoryInUseError: If any transaction references the category
        """
        in_use = count_category_references(category, transactions)
        if in_use:
            raise CategoryInUseError(category.id, in_use)
        await self.delete_category(category.id)

    async def _delete(self, kind: CollectionKind, record_id: str) -> None:
        await self._execute(
            kind,
            "delete",
            record_id,
            lambda: self._store.delete_at(kind.value, record_id),
        )

    async def _execute(
        self,
        kind: CollectionKind,
        operation: str,
        record_id: Optional[str],
        action: Callable[[], Awaitable[T]],
    ) -> T:
        """Run one store call and classify whatever it raises."""
        try:
            result = await action()
        except Exception as e:
            error_kind = classify_error(e)
            self._audit.log(
                SyncEventBuilder.write_failed(
                    kind.value, operation, record_id, error_kind.value, str(e)
                )
            )
            if error_kind == ErrorKind.PERMISSION_DENIED:
                raise PermissionDeniedError(
                    f"Permission denied: the store's access rules do not allow "
                    f"writing to '{kind.value}'.",
                    kind.value,
                    operation,
                ) from e
            if error_kind == ErrorKind.UNAVAILABLE:
                raise UnavailableError(
                    "The store is temporarily unavailable, please try again later.",
                    kind.value,
                    operation,
                ) from e
            raise

        written_id = record_id or (result if isinstance(result, str) else "")
        self._audit.log(SyncEventBuilder.write_completed(kind.value, operation, written_id))
        logger.info("write_completed", collection=kind.value, operation=operation, id=written_id)
        return result
