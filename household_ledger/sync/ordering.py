"""
Ordering Policy for transactions.

Newest first by creation instant; records created in the same
millisecond fall back to their calendar date, newest first. Anything
still tied keeps the order the store delivered it in, which is why the
policy is only ever applied with a stable sort.
"""

from functools import cmp_to_key
from typing import Iterable

from household_ledger.models.records import Transaction


def compare_transactions(a: Transaction, b: Transaction) -> int:
    """
    Comparator for the policy: negative when ``a`` sorts before ``b``.

    Returns 0 for residual ties; only use it with a stable sort.
    """
    if a.created_at != b.created_at:
        return -1 if a.created_at > b.created_at else 1
    if a.spent_on != b.spent_on:
        return -1 if a.spent_on > b.spent_on else 1
    return 0


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Return a new list in policy order. ``sorted`` is stable."""
    return sorted(transactions, key=cmp_to_key(compare_transactions))


def sort_for_listing(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Order used by expense lists: calendar date first, then creation instant.

    Both descending. Differs from the sync order, which favours entry time.
    """
    return sorted(
        transactions,
        key=lambda t: (t.spent_on, t.created_at),
        reverse=True,
    )
