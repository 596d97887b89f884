"""Tests for ledger summaries."""

import pytest
from datetime import date
from decimal import Decimal

from household_ledger.models import Category, PaymentMethod, Transaction, User
from household_ledger.queries import (
    UNKNOWN_CATEGORY_COLOR,
    UNKNOWN_USER_COLOR,
    UNKNOWN_USER_NAME,
    category_in_use,
    category_label,
    count_category_references,
    daily_totals,
    resolve_category,
    summarize,
    totals_by_category,
    totals_by_user,
)


CATEGORIES = [
    Category(id="food", name="food", label="Food", color="#F87171"),
    Category(id="eating-out", name="Eating Out", label="Eating out", color="#FBBF24"),
]

USERS = [User(id="1", name="Me", color="#60A5FA")]


def make_transaction(id, amount, spent_on, category="food", user_id="1", card=False):
    return Transaction(
        id=id,
        amount=Decimal(amount),
        spent_on=spent_on,
        category=category,
        user_id=user_id,
        payment_method=PaymentMethod.CARD if card else PaymentMethod.CASH,
    )


TRANSACTIONS = [
    make_transaction("a", "10", date(2024, 5, 1)),
    make_transaction("b", "5.50", date(2024, 5, 1), card=True),
    make_transaction("c", "20", date(2024, 4, 30), category="Eating Out", user_id="ghost"),
    make_transaction("d", "2", date(2024, 5, 31), category="deleted"),
]


class TestLookups:
    """Tests for category resolution with orphaned references."""

    def test_resolve_by_id_then_name(self):
        """Test that a reference matches an id first, then a name."""
        assert resolve_category("food", CATEGORIES).label == "Food"
        assert resolve_category("Eating Out", CATEGORIES).id == "eating-out"
        assert resolve_category("deleted", CATEGORIES) is None

    def test_unknown_category_falls_back_to_reference(self):
        """Test that a dangling reference is shown as-is."""
        assert category_label("deleted", CATEGORIES) == "deleted"

    def test_reference_counting(self):
        """Test counting transactions that reference a category."""
        assert count_category_references(CATEGORIES[0], TRANSACTIONS) == 2
        assert count_category_references(CATEGORIES[1], TRANSACTIONS) == 1
        assert count_category_references("deleted", TRANSACTIONS) == 1
        assert category_in_use("pets", TRANSACTIONS) is False


class TestAggregations:
    """Tests for totals."""

    def test_summarize(self):
        """Test all-time and monthly totals by payment method."""
        summary = summarize(TRANSACTIONS, today=date(2024, 5, 15))
        assert summary.transaction_count == 4
        assert summary.total == Decimal("37.50")
        assert summary.cash_total == Decimal("32")
        assert summary.card_total == Decimal("5.50")
        assert summary.month_total == Decimal("17.50")
        assert summary.month_cash_total == Decimal("12")
        assert summary.month_card_total == Decimal("5.50")

    def test_summarize_empty(self):
        """Test that no transactions give zero totals."""
        summary = summarize([], today=date(2024, 5, 15))
        assert summary.transaction_count == 0
        assert summary.total == 0

    def test_daily_totals_cash_only(self):
        """Test one entry per day of the month, card spending excluded."""
        totals = daily_totals(TRANSACTIONS, 2024, 5)
        assert len(totals) == 31
        assert totals[0].day == 1
        assert totals[0].total == Decimal("10")
        assert totals[30].total == Decimal("2")
        assert sum(t.total for t in totals) == Decimal("12")

    def test_daily_totals_all_methods(self):
        """Test that the payment filter can be lifted."""
        totals = daily_totals(TRANSACTIONS, 2024, 5, payment_method=None)
        assert totals[0].total == Decimal("15.50")

    def test_totals_by_category(self):
        """Test grouping with labels and fallback colors."""
        totals = {t.category: t for t in totals_by_category(TRANSACTIONS, CATEGORIES)}
        assert totals["food"].total == Decimal("15.50")
        assert totals["food"].label == "Food"
        assert totals["Eating Out"].label == "Eating out"
        assert totals["deleted"].color == UNKNOWN_CATEGORY_COLOR

    def test_totals_by_user_unknown_member(self):
        """Test that a deleted member is reported as unknown."""
        totals = {t.user_id: t for t in totals_by_user(TRANSACTIONS, USERS)}
        assert totals["1"].name == "Me"
        assert totals["1"].total == Decimal("17.50")
        assert totals["ghost"].name == UNKNOWN_USER_NAME
        assert totals["ghost"].color == UNKNOWN_USER_COLOR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
