"""Tests for the schema normalizer and the ordering policy."""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from household_ledger.models import Category, CollectionKind, PaymentMethod, Transaction, User
from household_ledger.sync import (
    compare_transactions,
    normalize_category,
    normalize_payment_method,
    normalize_record,
    normalize_transaction,
    normalize_user,
    sort_for_listing,
    sort_transactions,
)


def raw_transaction(**overrides):
    raw = {
        "id": "t1",
        "amount": 12.5,
        "date": "2024-05-01",
        "description": "Lunch",
        "category": "food",
        "userId": "1",
        "timestamp": 1000,
    }
    raw.update(overrides)
    return raw


def make_transaction(id, created_at, spent_on):
    return Transaction(
        id=id,
        amount=Decimal("1"),
        spent_on=spent_on,
        category="food",
        user_id="1",
        created_at=created_at,
    )


class TestPaymentMethodNormalization:
    """Tests for payment method coercion."""

    def test_legacy_card_spelling(self):
        """Test that the legacy "CreditCard" spelling maps to card."""
        transaction = normalize_transaction(raw_transaction(paymentMethod="CreditCard"))
        assert transaction.payment_method == PaymentMethod.CARD

    def test_missing_payment_method_is_cash(self):
        """Test that a transaction without the field is cash."""
        transaction = normalize_transaction(raw_transaction())
        assert transaction.payment_method == PaymentMethod.CASH

    @pytest.mark.parametrize("value", ["Cash", "cash", "CARD", "Card", "debit", "", None, 1])
    def test_unknown_values_are_cash(self, value):
        """Test that anything but an exact card spelling is cash."""
        assert normalize_payment_method(value) == PaymentMethod.CASH

    def test_card_values(self):
        """Test the accepted card spellings."""
        assert normalize_payment_method("card") == PaymentMethod.CARD
        assert normalize_payment_method("CreditCard") == PaymentMethod.CARD

    @pytest.mark.parametrize("value", ["Cash", "CreditCard", "bogus", None])
    def test_normalization_is_idempotent(self, value):
        """Test that normalizing twice gives the same record."""
        once = normalize_transaction(raw_transaction(paymentMethod=value))
        twice = normalize_transaction(once)
        assert twice == once


class TestTransactionNormalization:
    """Tests for legacy transaction shapes."""

    def test_string_amount_and_timestamp(self):
        """Test that amounts and instants stored as strings are parsed."""
        transaction = normalize_transaction(raw_transaction(amount="7.25", timestamp="1500"))
        assert transaction.amount == Decimal("7.25")
        assert transaction.created_at == 1500

    @pytest.mark.parametrize("timestamp", [float("inf"), float("-inf"), float("nan"), "1e400"])
    def test_non_finite_timestamp_reads_as_zero(self, timestamp):
        """Test that a timestamp with no integer value does not raise."""
        transaction = normalize_transaction(raw_transaction(timestamp=timestamp))
        assert transaction.created_at == 0

    def test_missing_timestamp_and_description(self):
        """Test defaults for records that predate these fields."""
        raw = raw_transaction(description=None)
        del raw["timestamp"]
        transaction = normalize_transaction(raw)
        assert transaction.created_at == 0
        assert transaction.description == ""

    def test_unreadable_record_raises(self):
        """Test that a record without an amount is rejected."""
        raw = raw_transaction()
        del raw["amount"]
        with pytest.raises(ValidationError):
            normalize_transaction(raw)

    def test_input_is_not_mutated(self):
        """Test that the raw document is left untouched."""
        raw = raw_transaction(paymentMethod="CreditCard")
        normalize_transaction(raw)
        assert raw["paymentMethod"] == "CreditCard"


class TestUserAndCategoryNormalization:
    """Tests for the user and category normalizers."""

    def test_user_passthrough(self):
        """Test that a stored member is read as-is."""
        user = normalize_user({"id": "1", "name": "Me", "color": "#60A5FA"})
        assert user == User(id="1", name="Me", color="#60A5FA")

    def test_category_missing_name_and_label(self):
        """Test that a missing name is recovered from the key."""
        category = normalize_category({"id": "pets", "color": "#000"})
        assert category.name == "pets"
        assert category.label == "pets"

    def test_category_model_passthrough(self):
        """Test that an already canonical category is returned unchanged."""
        category = Category(id="food", name="food", label="Food", color="#F87171")
        assert normalize_category(category) is category

    def test_dispatch_by_kind(self):
        """Test normalize_record picks the normalizer for the collection."""
        record = normalize_record(CollectionKind.TRANSACTIONS, raw_transaction())
        assert isinstance(record, Transaction)
        record = normalize_record(CollectionKind.USERS, {"id": "1", "name": "Me", "color": "#fff"})
        assert isinstance(record, User)


class TestOrderingPolicy:
    """Tests for transaction ordering."""

    def test_same_instant_falls_back_to_date(self):
        """Test the 300/100/300 scenario: date breaks the instant tie."""
        first = make_transaction("first", 300, date(2024, 5, 1))
        second = make_transaction("second", 100, date(2024, 5, 2))
        third = make_transaction("third", 300, date(2024, 5, 3))

        ordered = sort_transactions([first, second, third])

        assert [t.id for t in ordered] == ["third", "first", "second"]

    def test_residual_ties_keep_input_order(self):
        """Test that the sort is stable for fully tied records."""
        records = [make_transaction(f"t{i}", 500, date(2024, 5, 1)) for i in range(5)]
        assert [t.id for t in sort_transactions(records)] == [f"t{i}" for i in range(5)]
        assert [t.id for t in sort_transactions(reversed(records))] == [
            f"t{i}" for i in reversed(range(5))
        ]

    def test_comparator_signs(self):
        """Test the comparator direction."""
        newer = make_transaction("a", 2, date(2024, 5, 1))
        older = make_transaction("b", 1, date(2024, 5, 9))
        assert compare_transactions(newer, older) < 0
        assert compare_transactions(older, newer) > 0
        assert compare_transactions(newer, newer) == 0

    def test_listing_order_is_date_first(self):
        """Test the list view order: calendar date, then instant."""
        a = make_transaction("a", 900, date(2024, 5, 1))
        b = make_transaction("b", 100, date(2024, 5, 3))
        c = make_transaction("c", 200, date(2024, 5, 3))
        assert [t.id for t in sort_for_listing([a, b, c])] == ["c", "b", "a"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
