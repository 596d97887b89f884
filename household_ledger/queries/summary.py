"""
Ledger Summaries

DESIGN DECISION: Summaries are computed from the arrays the sync engine
delivers, never from the store directly. They are pure functions so the
display layer can recompute them on every emission.

Orphaned references are expected (deletes never cascade, collections
are not mutually consistent), so every lookup has a fallback:
- unknown member -> "Unknown" in a neutral grey
- unknown category -> the raw reference in a neutral grey
"""

import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from pydantic import BaseModel, Field

from household_ledger.models.records import Category, PaymentMethod, Transaction, User


UNKNOWN_USER_NAME = "Unknown"
UNKNOWN_USER_COLOR = "#cccccc"
UNKNOWN_CATEGORY_COLOR = "#9CA3AF"

ZERO = Decimal("0")


class LedgerSummary(BaseModel):
    """Headline figures of the dashboard."""

    transaction_count: int = Field(ge=0)
    total: Decimal = ZERO
    cash_total: Decimal = ZERO
    card_total: Decimal = ZERO
    month_total: Decimal = ZERO
    month_cash_total: Decimal = ZERO
    month_card_total: Decimal = ZERO


class DailyTotal(BaseModel):
    day: int = Field(ge=1, le=31)
    total: Decimal = ZERO


class CategoryTotal(BaseModel):
    category: str = Field(..., description="Reference as stored on the transactions")
    label: str
    color: str
    total: Decimal


class UserTotal(BaseModel):
    user_id: str
    name: str
    color: str
    total: Decimal


# =============================================================================
# LOOKUPS
# =============================================================================

def resolve_category(reference: str, categories: Sequence[Category]) -> Optional[Category]:
    """Find the category a transaction points at, by id first, then by name."""
    for category in categories:
        if category.id == reference:
            return category
    for category in categories:
        if category.name == reference:
            return category
    return None


def category_label(reference: str, categories: Sequence[Category]) -> str:
    category = resolve_category(reference, categories)
    return category.label if category else reference


def category_color(reference: str, categories: Sequence[Category]) -> str:
    category = resolve_category(reference, categories)
    return category.color if category else UNKNOWN_CATEGORY_COLOR


def count_category_references(
    category: Union[Category, str],
    transactions: Iterable[Transaction],
) -> int:
    """How many transactions point at ``category`` (by id or by name)."""
    if isinstance(category, Category):
        references = {category.id, category.name}
    else:
        references = {category}
    return sum(1 for t in transactions if t.category in references)


def category_in_use(
    category: Union[Category, str],
    transactions: Iterable[Transaction],
) -> bool:
    return count_category_references(category, transactions) > 0


# =============================================================================
# AGGREGATIONS
# =============================================================================

def filter_by_payment_method(
    transactions: Iterable[Transaction],
    payment_method: Optional[PaymentMethod],
) -> list[Transaction]:
    if payment_method is None:
        return list(transactions)
    return [t for t in transactions if t.payment_method == payment_method]


def _in_month(transaction: Transaction, year: int, month: int) -> bool:
    return transaction.spent_on.year == year and transaction.spent_on.month == month


def summarize(transactions: Sequence[Transaction], today: Optional[date] = None) -> LedgerSummary:
    """
    All-time and current-month totals, split by payment method.
    """
    today = today or date.today()
    summary = {
        "total": ZERO,
        "cash_total": ZERO,
        "card_total": ZERO,
        "month_total": ZERO,
        "month_cash_total": ZERO,
        "month_card_total": ZERO,
    }

    for t in transactions:
        method = "card" if t.payment_method == PaymentMethod.CARD else "cash"
        summary["total"] += t.amount
        summary[f"{method}_total"] += t.amount
        if _in_month(t, today.year, today.month):
            summary["month_total"] += t.amount
            summary[f"month_{method}_total"] += t.amount

    return LedgerSummary(transaction_count=len(transactions), **summary)


def daily_totals(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    payment_method: Optional[PaymentMethod] = PaymentMethod.CASH,
) -> list[DailyTotal]:
    """
    One entry per calendar day of the month, zeros included.

    Cash only by default, like the dashboard's daily chart.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    totals = [ZERO] * days_in_month

    for t in filter_by_payment_method(transactions, payment_method):
        if _in_month(t, year, month):
            totals[t.spent_on.day - 1] += t.amount

    return [DailyTotal(day=i + 1, total=total) for i, total in enumerate(totals)]


def totals_by_category(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    payment_method: Optional[PaymentMethod] = None,
) -> list[CategoryTotal]:
    """Spending per category reference, in first-seen order, zero totals dropped."""
    groups: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in filter_by_payment_method(transactions, payment_method):
        groups[t.category] += t.amount

    return [
        CategoryTotal(
            category=reference,
            label=category_label(reference, categories),
            color=category_color(reference, categories),
            total=total,
        )
        for reference, total in groups.items()
        if total > 0
    ]


def totals_by_user(
    transactions: Iterable[Transaction],
    users: Sequence[User],
    payment_method: Optional[PaymentMethod] = None,
) -> list[UserTotal]:
    """Spending per member, in first-seen order."""
    groups: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in filter_by_payment_method(transactions, payment_method):
        groups[t.user_id] += t.amount

    by_id = {user.id: user for user in users}
    results = []
    for user_id, total in groups.items():
        user = by_id.get(user_id)
        results.append(
            UserTotal(
                user_id=user_id,
                name=user.name if user else UNKNOWN_USER_NAME,
                color=user.color if user else UNKNOWN_USER_COLOR,
                total=total,
            )
        )
    return results
