"""
Balance Aggregator

This module is the ledger's read and write surface. It combines concrete
entries with the lazily expanded occurrences of recurring templates to
answer "what is my balance through this day" and "what happened on this
day", and it owns every mutation of the ledger.

BALANCE: the money left, i.e. the negated signed sum of every entry dated
on or before the day (expenses are positive, so they lower the balance).

RECURRING EDITS: touching one month of a template never changes another
month. Editing materializes an override entry for that month; deleting
records an exclusion so the month doesn't come back on the next read.

CONCURRENCY: reads share the ledger lock, mutations hold it exclusively.
A reader never observes a materialize+edit or delete+exclude pair half
applied.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol
from uuid import UUID

import structlog

from household_ledger.audit import AuditLogger
from household_ledger.config import LedgerSettings, get_settings
from household_ledger.ledger.errors import (
    LedgerError,
    OccurrenceOutOfRangeError,
    PremiumRequiredError,
    TemplateInactiveError,
    TemplateNotFoundError,
)
from household_ledger.ledger.locking import AsyncReadWriteLock
from household_ledger.ledger.recurrence import RecurrenceExpander
from household_ledger.models.ledger import (
    BalanceLevel,
    LedgerEntry,
    Month,
    RecurringExpenseTemplate,
)
from household_ledger.services.storage import LedgerStoreInterface
from household_ledger.validation import (
    AmountInput,
    parse_amount,
    validate_title,
)


logger = structlog.get_logger(__name__)


class PremiumGate(Protocol):
    """Anything that can tell whether the account is premium."""

    def is_premium(self) -> bool:
        ...


class BalanceAggregator:
    """
    Computes balances and owns ledger mutations.

    GUARANTEES:
    - balance_through(d2) - balance_through(d1) is exactly the negated
      sum of the entries dated in (d1, d2]
    - entries_on is stable: concrete entries in insertion order, then
      template occurrences in template creation order
    - Recurring templates can only be created when the gate says premium
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        gate: Optional[PremiumGate] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        expander: Optional[RecurrenceExpander] = None,
    ):
        self._store = store
        self._gate = gate
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._expander = expander or RecurrenceExpander()
        self._lock = AsyncReadWriteLock()

    # =========================================================================
    # READS
    # =========================================================================

    async def balance_through(self, day: date) -> Decimal:
        """Money left at the end of `day`."""
        async with self._lock.read():
            return await self._balance_through(day)

    async def entries_on(self, day: date) -> list[LedgerEntry]:
        """
        Everything dated exactly `day`.

        Template occurrences come back as virtual entries: they have a
        stable id and `virtual=True`, and are not stored.
        """
        async with self._lock.read():
            entries = await self._store.entries_in_range(day, day)
            for template in await self._store.active_templates():
                skipped = await self._store.skipped_months(template.id)
                entries.extend(
                    occurrence.to_entry()
                    for occurrence in self._expander.expand(template, day, day, skipped)
                )
            return entries

    async def balance_level(self, day: date) -> BalanceLevel:
        """Classify the balance of `day` for display."""
        balance = await self.balance_through(day)
        if balance <= 0:
            return BalanceLevel.NEGATIVE
        if balance < self._settings.low_money_warning_amount:
            return BalanceLevel.LOW
        return BalanceLevel.HEALTHY

    async def templates(self, include_inactive: bool = False) -> list[RecurringExpenseTemplate]:
        async with self._lock.read():
            if include_inactive:
                return await self._store.list_templates()
            return await self._store.active_templates()

    async def _balance_through(self, day: date) -> Decimal:
        # Caller holds the lock (either side)
        total = sum(
            (entry.amount for entry in await self._store.entries_in_range(None, day)),
            Decimal(0),
        )
        for template in await self._store.active_templates():
            if template.start_date > day:
                continue
            skipped = await self._store.skipped_months(template.id)
            total += self._expander.total(template, None, day, skipped)
        return -total

    # =========================================================================
    # CONCRETE ENTRIES
    # =========================================================================

    async def add_entry(
        self,
        title: str,
        amount: AmountInput,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Record a one-off movement.

        Raises:
            InvalidAmountError: If the amount is unusable
            InvalidTitleError: If the title is empty
        """
        entry = LedgerEntry(
            title=validate_title(title),
            amount=self._parse_amount(amount),
            entry_date=entry_date,
        )
        async with self._lock.write():
            await self._store.add_entry(entry)

        if self._audit_logger:
            await self._audit_logger.log_entry_added(
                entry_id=entry.id,
                title=entry.title,
                amount=str(entry.amount),
                entry_date=entry.entry_date,
                correlation_id=correlation_id,
            )
        return entry

    async def update_entry(
        self,
        entry_id: UUID,
        title: str,
        amount: AmountInput,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[LedgerEntry]:
        """
        Replace title, amount and date of a stored entry.

        Returns:
            The updated entry, or None if no such entry is stored
        """
        title = validate_title(title)
        parsed = self._parse_amount(amount)

        async with self._lock.write():
            existing = await self._store.get_entry(entry_id)
            if existing is None:
                return None
            updated = existing.edited(title, parsed, entry_date)
            if not await self._store.update_entry(updated):
                return None

        if self._audit_logger:
            await self._audit_logger.log_entry_updated(
                entry_id=updated.id,
                amount=str(updated.amount),
                entry_date=updated.entry_date,
                correlation_id=correlation_id,
            )
        return updated

    async def delete_entry(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a stored entry.

        Deleting a materialized occurrence also excludes its month, so
        the template doesn't bring the original amount back.

        Returns:
            False if no such entry is stored
        """
        async with self._lock.write():
            entry = await self._store.get_entry(entry_id)
            found = entry is not None and await self._store.delete_entry(entry_id)
            if found and entry.recurring_template_id is not None:
                await self._store.record_exclusion(entry.recurring_template_id, entry.recurring_month)

        if self._audit_logger:
            await self._audit_logger.log_entry_deleted(
                entry_id=entry_id,
                found=found,
                correlation_id=correlation_id,
            )
        return found

    async def restore_entry(
        self,
        entry: LedgerEntry,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Put back a previously deleted entry, identity included (undo).

        A restored override takes its month back; the exclusion recorded
        on delete stays, so the template occurrence remains suppressed.

        Raises:
            LedgerError: If the entry is virtual
            DuplicateError: If the entry (or its month's override) is still stored
        """
        if entry.virtual:
            raise LedgerError("Virtual occurrences cannot be restored")

        async with self._lock.write():
            if entry.recurring_template_id is not None:
                await self._store.record_override(
                    entry.recurring_template_id, entry.recurring_month, entry
                )
            else:
                await self._store.add_entry(entry)

        if self._audit_logger:
            await self._audit_logger.log_entry_restored(
                entry_id=entry.id,
                correlation_id=correlation_id,
            )
        return entry

    # =========================================================================
    # BALANCE ADJUSTMENT
    # =========================================================================

    async def adjust_balance(
        self,
        day: date,
        target_balance: AmountInput,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[LedgerEntry]:
        """
        Make balance_through(day) equal `target_balance`.

        Stores one synthetic entry of amount -(target - current) dated `day`.

        Returns:
            The synthetic entry, or None if the balance was already right

        Raises:
            InvalidAmountError: If the target isn't a finite number within policy
        """
        target = parse_amount(
            target_balance,
            allow_zero=True,
            max_abs=self._settings.max_adjustment_amount,
            places=self._settings.amount_places,
        )

        entry = None
        async with self._lock.write():
            current = await self._balance_through(day)
            diff = target - current
            if diff != 0:
                entry = LedgerEntry(
                    title=self._settings.adjustment_title,
                    amount=-diff,
                    entry_date=day,
                )
                await self._store.add_entry(entry)

        logger.debug("balance_adjusted", day=day.isoformat(), previous=str(current), target=str(target))

        if self._audit_logger:
            await self._audit_logger.log_balance_adjusted(
                entry_id=entry.id if entry else None,
                previous_balance=str(current),
                target_balance=str(target),
                entry_date=day,
                correlation_id=correlation_id,
            )
        return entry

    # =========================================================================
    # RECURRING TEMPLATES
    # =========================================================================

    async def create_template(
        self,
        title: str,
        amount: AmountInput,
        start_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringExpenseTemplate:
        """
        Create a monthly expense. Premium only.

        Raises:
            PremiumRequiredError: If the account isn't premium
            InvalidAmountError / InvalidTitleError: On bad input
        """
        if self._gate is None or not self._gate.is_premium():
            if self._audit_logger:
                await self._audit_logger.log_premium_gate_denied(
                    action="create a monthly expense",
                    correlation_id=correlation_id,
                )
            raise PremiumRequiredError("create a monthly expense")

        template = RecurringExpenseTemplate(
            title=validate_title(title),
            amount=self._parse_amount(amount),
            start_date=start_date,
        )
        async with self._lock.write():
            await self._store.add_template(template)

        if self._audit_logger:
            await self._audit_logger.log_template_created(
                template_id=template.id,
                title=template.title,
                amount=str(template.amount),
                start_date=template.start_date,
                correlation_id=correlation_id,
            )
        return template

    async def deactivate_template(
        self,
        template_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Stop a template from producing occurrences.

        Already materialized overrides are kept.

        Returns:
            False if the template doesn't exist
        """
        async with self._lock.write():
            found = await self._store.deactivate_template(template_id)

        if found and self._audit_logger:
            await self._audit_logger.log_template_deactivated(
                template_id=template_id,
                correlation_id=correlation_id,
            )
        return found

    async def edit_occurrence(
        self,
        template_id: UUID,
        month: Month,
        title: str,
        amount: AmountInput,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Edit one month of a template without touching the others.

        The first edit of a month materializes an override entry; later
        edits update that same entry.

        Raises:
            TemplateNotFoundError: If the template doesn't exist
            TemplateInactiveError: If the template was deactivated
            OccurrenceOutOfRangeError: If the month precedes the template
        """
        title = validate_title(title)
        parsed = self._parse_amount(amount)

        async with self._lock.write():
            template = await self._require_template(template_id, month)
            if not template.active:
                raise TemplateInactiveError(f"Template is inactive: {template_id}")

            existing = await self._store.get_override(template_id, month)
            if existing is not None:
                entry = existing.edited(title, parsed, entry_date)
                await self._store.update_entry(entry)
                materialized = False
            else:
                entry = LedgerEntry(
                    title=title,
                    amount=parsed,
                    entry_date=entry_date,
                    recurring_template_id=template_id,
                    recurring_month=month,
                )
                await self._store.record_override(template_id, month, entry)
                materialized = True

        logger.debug(
            "occurrence_edited",
            template_id=str(template_id),
            month=str(month),
            materialized=materialized,
        )

        if self._audit_logger:
            await self._audit_logger.log_occurrence_overridden(
                template_id=template_id,
                month=str(month),
                entry_id=entry.id,
                materialized=materialized,
                correlation_id=correlation_id,
            )
        return entry

    async def delete_occurrence(
        self,
        template_id: UUID,
        month: Month,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete one month of a template without touching the others.

        Returns:
            False if the template doesn't exist or the month precedes it
        """
        async with self._lock.write():
            try:
                await self._require_template(template_id, month)
            except (TemplateNotFoundError, OccurrenceOutOfRangeError):
                return False

            existing = await self._store.get_override(template_id, month)
            if existing is not None:
                await self._store.delete_entry(existing.id)
            await self._store.record_exclusion(template_id, month)

        if self._audit_logger:
            await self._audit_logger.log_occurrence_excluded(
                template_id=template_id,
                month=str(month),
                correlation_id=correlation_id,
            )
        return True

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _parse_amount(self, amount: AmountInput) -> Decimal:
        return parse_amount(amount, places=self._settings.amount_places)

    async def _require_template(self, template_id: UUID, month: Month) -> RecurringExpenseTemplate:
        template = await self._store.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id}")
        if month < template.start_month:
            raise OccurrenceOutOfRangeError(
                f"{month} is before the first occurrence ({template.start_month})"
            )
        return template
