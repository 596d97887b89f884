"""Configuration package."""

from household_ledger.config.settings import (
    AppSettings,
    FirestoreSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirestoreSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
