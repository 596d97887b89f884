"""
Schema Normalizer

Maps raw stored documents, including legacy shapes written by older
clients, onto the canonical record models. Every function here is pure:
same input, same output, no I/O, so it can be tested against fixed
fixtures and applied twice without changing the result.

Legacy shapes handled:
- transactions without a payment method (predate card tracking) -> cash
- payment methods spelled "Cash" / "CreditCard" by the first release
- amounts and timestamps stored as strings or floats
- unreadable or non-finite timestamps, read as 0 (sort last)
- missing or null descriptions
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Union

from household_ledger.models.records import (
    Category,
    CollectionKind,
    PaymentMethod,
    Transaction,
    User,
)


# Exact, case-sensitive spellings that mean "card". Anything else is cash.
CARD_SPELLINGS = frozenset({PaymentMethod.CARD.value, "CreditCard"})

RawRecord = Mapping[str, Any]


def normalize_payment_method(value: Any) -> PaymentMethod:
    """Resolve a stored payment method to one of the two known values."""
    if isinstance(value, str) and value in CARD_SPELLINGS:
        return PaymentMethod.CARD
    return PaymentMethod.CASH


def _as_decimal(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return value
    return value


def _as_millis(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        millis = float(value)
    except (TypeError, ValueError):
        return 0
    # inf and nan have no integer value
    if not math.isfinite(millis):
        return 0
    return int(millis)


def normalize_transaction(raw: Union[RawRecord, Transaction]) -> Transaction:
    """
    Build a canonical Transaction from a stored document.

    ``raw`` must already carry the store key under ``id``.

    Raises:
        pydantic.ValidationError: If the document cannot be read at all
            (no amount, unparseable date...)
    """
    if isinstance(raw, Transaction):
        raw = {"id": raw.id, **raw.to_document()}

    data = dict(raw)
    data["paymentMethod"] = normalize_payment_method(data.get("paymentMethod")).value
    data["amount"] = _as_decimal(data.get("amount"))
    data["timestamp"] = _as_millis(data.get("timestamp"))
    data["description"] = data.get("description") or ""
    return Transaction.model_validate(data)


def normalize_user(raw: Union[RawRecord, User]) -> User:
    # No legacy user fields yet.
    if isinstance(raw, User):
        return raw
    return User.model_validate(dict(raw))


def normalize_category(raw: Union[RawRecord, Category]) -> Category:
    """
    Build a canonical Category.

    Extension point for future legacy category shapes; today the only
    repair is a missing machine name, recovered from the key.
    """
    if isinstance(raw, Category):
        return raw
    data = dict(raw)
    if not data.get("name"):
        data["name"] = data.get("id")
    if not data.get("label"):
        data["label"] = data["name"]
    return Category.model_validate(data)


NORMALIZERS: dict[CollectionKind, Callable[[Any], Any]] = {
    CollectionKind.TRANSACTIONS: normalize_transaction,
    CollectionKind.USERS: normalize_user,
    CollectionKind.CATEGORIES: normalize_category,
}


def normalize_record(kind: CollectionKind, raw: RawRecord) -> Any:
    """Dispatch to the normalizer for a collection kind."""
    return NORMALIZERS[kind](raw)
