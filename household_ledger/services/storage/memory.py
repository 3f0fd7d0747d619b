"""
In-Memory Storage Implementation

Reference implementation of the storage interfaces, kept entirely in
process memory. Used by the tests and by hosts that persist the ledger
themselves.

TRADEOFFS:
- Nothing survives the process
- Range queries scan every entry (fine for a household ledger)

Every method completes without awaiting, so each call is atomic with
respect to other coroutines on the same event loop.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.ledger import (
    LedgerEntry,
    Month,
    RecurringExpenseTemplate,
)
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStoreInterface,
    NotFoundError,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """
    Dict-backed ledger store.

    Python dicts keep insertion order, and replacing a value keeps its
    position, which gives entries_in_range its ordering for free.
    """

    def __init__(self):
        self._entries: dict[UUID, LedgerEntry] = {}
        self._templates: dict[UUID, RecurringExpenseTemplate] = {}
        self._overrides: dict[tuple[UUID, Month], UUID] = {}
        self._exclusions: set[tuple[UUID, Month]] = set()

    async def add_entry(self, entry: LedgerEntry) -> UUID:
        if entry.id in self._entries:
            raise DuplicateError(f"Entry already exists: {entry.id}")
        self._entries[entry.id] = entry
        return entry.id

    async def get_entry(self, entry_id: UUID) -> Optional[LedgerEntry]:
        return self._entries.get(entry_id)

    async def update_entry(self, entry: LedgerEntry) -> bool:
        if entry.id not in self._entries:
            return False
        self._entries[entry.id] = entry
        return True

    async def delete_entry(self, entry_id: UUID) -> bool:
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        if entry.recurring_template_id is not None:
            self._overrides.pop((entry.recurring_template_id, entry.recurring_month), None)
        return True

    async def entries_in_range(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> list[LedgerEntry]:
        return [
            entry for entry in self._entries.values()
            if (date_from is None or entry.entry_date >= date_from)
            and (date_to is None or entry.entry_date <= date_to)
        ]

    async def add_template(self, template: RecurringExpenseTemplate) -> UUID:
        if template.id in self._templates:
            raise DuplicateError(f"Template already exists: {template.id}")
        self._templates[template.id] = template
        return template.id

    async def get_template(self, template_id: UUID) -> Optional[RecurringExpenseTemplate]:
        return self._templates.get(template_id)

    async def list_templates(self) -> list[RecurringExpenseTemplate]:
        return list(self._templates.values())

    async def active_templates(self) -> list[RecurringExpenseTemplate]:
        return [t for t in self._templates.values() if t.active]

    async def deactivate_template(self, template_id: UUID) -> bool:
        template = self._templates.get(template_id)
        if template is None:
            return False
        self._templates[template_id] = template.model_copy(update={"active": False})
        return True

    async def record_override(
        self,
        template_id: UUID,
        month: Month,
        entry: LedgerEntry,
    ) -> UUID:
        if template_id not in self._templates:
            raise NotFoundError(f"Template not found: {template_id}")
        key = (template_id, month)
        if key in self._overrides:
            raise DuplicateError(f"Month {month} already has an override")
        if entry.recurring_template_id != template_id or entry.recurring_month != month:
            raise ValueError("Override entry must reference its template and month")
        if entry.id in self._entries:
            raise DuplicateError(f"Entry already exists: {entry.id}")

        self._entries[entry.id] = entry
        self._overrides[key] = entry.id
        return entry.id

    async def get_override(
        self,
        template_id: UUID,
        month: Month,
    ) -> Optional[LedgerEntry]:
        entry_id = self._overrides.get((template_id, month))
        if entry_id is None:
            return None
        return self._entries.get(entry_id)

    async def record_exclusion(self, template_id: UUID, month: Month) -> None:
        if template_id not in self._templates:
            raise NotFoundError(f"Template not found: {template_id}")
        self._exclusions.add((template_id, month))

    async def skipped_months(self, template_id: UUID) -> frozenset[Month]:
        return frozenset(
            month
            for (tid, month) in (*self._overrides.keys(), *self._exclusions)
            if tid == template_id
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
