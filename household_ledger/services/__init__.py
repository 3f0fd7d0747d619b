"""Services package."""

from household_ledger.services.preferences import (
    InMemoryPreferences,
    JsonFilePreferences,
    PreferencesInterface,
    StoredPreferences,
)
from household_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Preferences
    "InMemoryPreferences",
    "JsonFilePreferences",
    "PreferencesInterface",
    "StoredPreferences",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "StorageError",
]
