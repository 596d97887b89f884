"""
Core Data Models for Household Ledger

These models define the canonical in-memory shape of every record the
sync engine delivers. They are designed to:
1. Enforce type safety at runtime
2. Keep the persisted field names of existing data readable
3. Be serializable back into store documents
4. Be immutable once delivered to observers

DESIGN DECISION: Python attributes are snake_case, while the stored
documents keep their historical camelCase names (userId, paymentMethod,
timestamp). Aliases bridge the two so old documents stay readable and
new documents stay readable by older clients.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CollectionKind(str, Enum):
    """
    The three logical collections kept in sync.

    Values double as the persisted collection names.
    """
    TRANSACTIONS = "transactions"
    USERS = "users"
    CATEGORIES = "categories"


class PaymentMethod(str, Enum):
    """
    How a transaction was paid.

    Any other stored value is coerced to CASH when read.
    """
    CASH = "cash"
    CARD = "card"


def category_key(name: str) -> str:
    """Derive the storage key of a category from its name."""
    return name.strip().lower()


# =============================================================================
# RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single dated expense.

    Transactions are immutable: there is no update operation, only
    create (store-assigned key) and delete.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned document key"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent"
    )
    spent_on: date = Field(
        ...,
        alias="date",
        description="Calendar day of the expense"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category id or name (not enforced by the store)"
    )
    user_id: str = Field(
        ...,
        alias="userId",
        description="Id of the paying member (may be orphaned)"
    )
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH,
        alias="paymentMethod",
    )
    created_at: int = Field(
        default=0,
        ge=0,
        alias="timestamp",
        description="Creation instant in epoch milliseconds, the primary ordering key"
    )

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)

    def to_document(self) -> dict[str, Any]:
        """Convert to the stored document shape (key excluded)."""
        return self.model_dump(by_alias=True, mode="json", exclude={"id"})


class TransactionDraft(BaseModel):
    """
    A transaction as submitted by the user, before the store assigns a key.

    If created_at is left empty the write pipeline stamps the current time.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., gt=0)
    spent_on: date
    description: str = Field(default="", max_length=500)
    category: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH
    created_at: Optional[int] = Field(default=None, ge=0)

    def to_document(self, created_at: int) -> dict[str, Any]:
        return {
            "amount": float(self.amount),
            "date": self.spent_on.isoformat(),
            "description": self.description,
            "category": self.category,
            "userId": self.user_id,
            "paymentMethod": self.payment_method.value,
            "timestamp": created_at,
        }


class User(BaseModel):
    """
    A household member.

    The id is chosen by the caller and used as the storage key, so
    writing an existing id overwrites that member.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(
        ...,
        description="Opaque display color token"
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Category(BaseModel):
    """
    A spending category.

    The name doubles as the key (see category_key). Uniqueness is the
    caller's job; updates are full-record overwrites.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Machine name, unique case-insensitively"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Human display label"
    )
    color: str
    icon: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# SNAPSHOTS AND VIEWS
# =============================================================================

class Snapshot(BaseModel):
    """
    One delivered view of a collection.

    Snapshots are not persisted. The subscription manager owns the last
    one per collection; observers only ever get a copy of the records.
    """
    model_config = ConfigDict(frozen=True)

    kind: CollectionKind
    records: tuple[Any, ...] = ()
    from_cache: bool = Field(
        default=False,
        description="Served from the local replica, not yet confirmed by the server"
    )
    has_pending_writes: bool = Field(
        default=False,
        description="Contains local writes the server has not acknowledged"
    )
    substituted: bool = Field(
        default=False,
        description="Records are the built-in defaults standing in for an empty collection"
    )

    @property
    def is_empty(self) -> bool:
        return not self.records


class ConfirmedView(BaseModel):
    """Members exactly as the store last reported them."""

    state: Literal["confirmed"] = "confirmed"
    records: list[User] = Field(default_factory=list)


class OptimisticView(BaseModel):
    """
    Locally substituted members shown while a seed write is in flight.

    Replaced by a ConfirmedView on the next non-empty snapshot, or
    rolled back to an empty ConfirmedView if the write fails.
    """

    state: Literal["optimistic"] = "optimistic"
    records: list[User]
    pending_write_id: str


UsersView = Annotated[
    Union[ConfirmedView, OptimisticView],
    Field(discriminator="state"),
]
