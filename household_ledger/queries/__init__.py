"""Aggregated summaries over delivered records."""

from household_ledger.queries.summary import (
    CategoryTotal,
    DailyTotal,
    LedgerSummary,
    UNKNOWN_CATEGORY_COLOR,
    UNKNOWN_USER_COLOR,
    UNKNOWN_USER_NAME,
    UserTotal,
    category_color,
    category_in_use,
    category_label,
    count_category_references,
    daily_totals,
    filter_by_payment_method,
    resolve_category,
    summarize,
    totals_by_category,
    totals_by_user,
)

__all__ = [
    "CategoryTotal",
    "DailyTotal",
    "LedgerSummary",
    "UNKNOWN_CATEGORY_COLOR",
    "UNKNOWN_USER_COLOR",
    "UNKNOWN_USER_NAME",
    "UserTotal",
    "category_color",
    "category_in_use",
    "category_label",
    "count_category_references",
    "daily_totals",
    "filter_by_payment_method",
    "resolve_category",
    "summarize",
    "totals_by_category",
    "totals_by_user",
]
