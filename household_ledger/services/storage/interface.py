"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Keep the balance engine independent of any storage engine
2. Use in-memory storage for testing and embedding
3. Add caching layers transparently

The interface is intentionally narrow - it is the contract the engine
depends on, nothing more. Each method is a single atomic step from the
engine's point of view; sequencing several of them atomically is the
engine's job (see household_ledger.ledger.locking).
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from household_ledger.models.ledger import (
    LedgerEntry,
    Month,
    RecurringExpenseTemplate,
)
from household_ledger.models.audit import AuditEvent


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Stores concrete entries, recurring templates, and the per-month
    override/exclusion bookkeeping of templates.
    """

    # -------------------------------------------------------------------------
    # Concrete entries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_entry(self, entry: LedgerEntry) -> UUID:
        """
        Store a new concrete entry.

        Returns:
            The entry's id

        Raises:
            DuplicateError: If an entry with the same id exists
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[LedgerEntry]:
        """Retrieve an entry by id, or None."""
        pass

    @abstractmethod
    async def update_entry(self, entry: LedgerEntry) -> bool:
        """
        Replace a stored entry (matched by id).

        The entry keeps its position in insertion order.

        Returns:
            False if no entry with that id exists
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID) -> bool:
        """
        Delete an entry by id.

        Deleting an override also releases its (template, month) slot.

        Returns:
            False if no entry with that id exists
        """
        pass

    @abstractmethod
    async def entries_in_range(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> list[LedgerEntry]:
        """
        List concrete entries dated within [date_from, date_to].

        Either bound may be None for an open range.

        Returns:
            Entries in insertion order
        """
        pass

    # -------------------------------------------------------------------------
    # Recurring templates
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_template(self, template: RecurringExpenseTemplate) -> UUID:
        """
        Store a new recurring template.

        Raises:
            DuplicateError: If a template with the same id exists
        """
        pass

    @abstractmethod
    async def get_template(self, template_id: UUID) -> Optional[RecurringExpenseTemplate]:
        """Retrieve a template by id, or None."""
        pass

    @abstractmethod
    async def list_templates(self) -> list[RecurringExpenseTemplate]:
        """All templates, active or not, in creation order."""
        pass

    @abstractmethod
    async def active_templates(self) -> list[RecurringExpenseTemplate]:
        """Active templates in creation order."""
        pass

    @abstractmethod
    async def deactivate_template(self, template_id: UUID) -> bool:
        """
        Mark a template inactive. Templates are never removed.

        Returns:
            False if no template with that id exists
        """
        pass

    # -------------------------------------------------------------------------
    # Per-month bookkeeping
    # -------------------------------------------------------------------------

    @abstractmethod
    async def record_override(
        self,
        template_id: UUID,
        month: Month,
        entry: LedgerEntry,
    ) -> UUID:
        """
        Store `entry` as the materialized occurrence of `template_id` for `month`.

        Adding the entry and claiming the month happen together.

        Raises:
            NotFoundError: If the template doesn't exist
            DuplicateError: If the month already has an override
        """
        pass

    @abstractmethod
    async def get_override(
        self,
        template_id: UUID,
        month: Month,
    ) -> Optional[LedgerEntry]:
        """The override entry for a template month, or None."""
        pass

    @abstractmethod
    async def record_exclusion(self, template_id: UUID, month: Month) -> None:
        """
        Suppress a template month without a replacement entry.

        Raises:
            NotFoundError: If the template doesn't exist
        """
        pass

    @abstractmethod
    async def skipped_months(self, template_id: UUID) -> frozenset[Month]:
        """Months of a template that must not be expanded (overrides and exclusions)."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one purchase flow).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
