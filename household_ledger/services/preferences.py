"""
Persisted Preferences

Small durable key/value state that must survive restarts, most
importantly the last known premium status.

DESIGN DECISION: Preferences are a pydantic model serialized as JSON.
Only settled values are written here; transient state never is.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ValidationError

from household_ledger.services.storage.interface import StorageError


logger = structlog.get_logger(__name__)


class StoredPreferences(BaseModel):
    """Everything we persist between runs."""

    premium: Optional[bool] = None


class PreferencesInterface(ABC):
    """Durable storage for StoredPreferences."""

    @abstractmethod
    def load(self) -> StoredPreferences:
        """Read the stored preferences (defaults if nothing stored yet)."""
        pass

    @abstractmethod
    def save(self, preferences: StoredPreferences) -> None:
        """
        Write the preferences.

        Raises:
            StorageError: If the write fails
        """
        pass

    def get_premium(self) -> Optional[bool]:
        return self.load().premium

    def set_premium(self, premium: bool) -> None:
        current = self.load()
        self.save(current.model_copy(update={"premium": premium}))


class InMemoryPreferences(PreferencesInterface):
    """Preferences that live as long as the object."""

    def __init__(self, initial: Optional[StoredPreferences] = None):
        self._preferences = initial or StoredPreferences()

    def load(self) -> StoredPreferences:
        return self._preferences

    def save(self, preferences: StoredPreferences) -> None:
        self._preferences = preferences


class JsonFilePreferences(PreferencesInterface):
    """
    Preferences stored in a JSON file.

    A missing or corrupt file reads as defaults: losing the cached
    premium flag only means the next provider check decides.
    """

    def __init__(self, path: str):
        self._path = Path(path)

    def load(self) -> StoredPreferences:
        if not self._path.exists():
            return StoredPreferences()
        try:
            return StoredPreferences.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (ValidationError, json.JSONDecodeError, OSError) as e:
            logger.warning("preferences_unreadable", path=str(self._path), error=str(e))
            return StoredPreferences()

    def save(self, preferences: StoredPreferences) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(preferences.model_dump_json(), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as e:
            raise StorageError(f"Failed to write preferences to {self._path}: {e}")
