"""
Collection Synchronization Engine

Normalizer and ordering are pure; the manager, writer and bootstrap
coordinator talk to a DocumentStoreInterface.
"""

from household_ledger.sync.normalizer import (
    CARD_SPELLINGS,
    normalize_category,
    normalize_payment_method,
    normalize_record,
    normalize_transaction,
    normalize_user,
)
from household_ledger.sync.ordering import (
    compare_transactions,
    sort_for_listing,
    sort_transactions,
)
from household_ledger.sync.manager import (
    STORE_ORDERING,
    Observer,
    SubscriptionHandle,
    SubscriptionManager,
)
from household_ledger.sync.writer import CategoryInUseError, WritePipeline
from household_ledger.sync.bootstrap import BootstrapCoordinator, SeedState

__all__ = [
    # Normalizer
    "CARD_SPELLINGS",
    "normalize_category",
    "normalize_payment_method",
    "normalize_record",
    "normalize_transaction",
    "normalize_user",
    # Ordering
    "compare_transactions",
    "sort_for_listing",
    "sort_transactions",
    # Subscriptions
    "STORE_ORDERING",
    "Observer",
    "SubscriptionHandle",
    "SubscriptionManager",
    # Writes
    "CategoryInUseError",
    "WritePipeline",
    # Bootstrap
    "BootstrapCoordinator",
    "SeedState",
]
