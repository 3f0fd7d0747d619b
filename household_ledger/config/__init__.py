"""Configuration package."""

from household_ledger.config.settings import (
    AppSettings,
    EntitlementSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EntitlementSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
