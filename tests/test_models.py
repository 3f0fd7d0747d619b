"""
Tests for the Household Ledger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Flow tests against in-memory stores and a scripted provider
3. No real provider or network calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from household_ledger.models.entitlement import (
    BillingResponseCode,
    BillingResult,
    PremiumStatus,
    PurchaseOutcome,
    PurchaseResult,
)
from household_ledger.models.ledger import (
    LedgerEntry,
    Month,
    Occurrence,
    RecurringExpenseTemplate,
)


class TestMonth:
    """Tests for the calendar month key."""

    def test_of_and_str(self):
        """Test building a month from a date."""
        month = Month.of(date(2020, 3, 17))
        assert month == Month(2020, 3)
        assert str(month) == "2020-03"

    def test_day_clamps_to_month_end(self):
        """Test that a day past the month's end lands on its last day."""
        assert Month(2020, 2).day(31) == date(2020, 2, 29)
        assert Month(2021, 2).day(31) == date(2021, 2, 28)
        assert Month(2021, 4).day(31) == date(2021, 4, 30)
        assert Month(2021, 5).day(31) == date(2021, 5, 31)

    def test_next_rolls_over_year(self):
        """Test December to January."""
        assert Month(2020, 12).next() == Month(2021, 1)

    def test_ordering(self):
        """Test that months order chronologically."""
        assert Month(2019, 12) < Month(2020, 1) < Month(2020, 2)
        assert Month(2020, 1).months_until(Month(2021, 3)) == 14

    def test_first_and_last_day(self):
        """Test month bounds."""
        assert Month(2024, 2).first_day == date(2024, 2, 1)
        assert Month(2024, 2).last_day == date(2024, 2, 29)


class TestLedgerEntry:
    """Tests for concrete ledger entries."""

    def test_entry_creation(self):
        """Test LedgerEntry model creation."""
        entry = LedgerEntry(title="  Groceries  ", amount=Decimal("42.50"), entry_date=date(2024, 1, 5))
        assert entry.title == "Groceries"
        assert entry.virtual is False
        assert entry.is_override is False
        assert entry.is_revenue is False

    def test_negative_amount_is_revenue(self):
        """Test that income is a negative amount."""
        entry = LedgerEntry(title="Salary", amount=Decimal("-2000"), entry_date=date(2024, 1, 1))
        assert entry.is_revenue is True

    def test_zero_amount_rejected(self):
        """Test that zero amounts are rejected."""
        with pytest.raises(ValueError, match="cannot be zero"):
            LedgerEntry(title="Nothing", amount=Decimal("0"), entry_date=date(2024, 1, 1))

    def test_non_finite_amount_rejected(self):
        """Test that NaN is rejected."""
        with pytest.raises(ValueError):
            LedgerEntry(title="Broken", amount=Decimal("NaN"), entry_date=date(2024, 1, 1))

    def test_recurring_reference_must_be_complete(self):
        """Test that a template id needs a month."""
        with pytest.raises(ValueError, match="must be set together"):
            LedgerEntry(
                title="Rent",
                amount=Decimal("500"),
                entry_date=date(2024, 1, 1),
                recurring_template_id=uuid4(),
            )

    def test_edited_keeps_identity(self):
        """Test that editing keeps id and recurring reference."""
        template_id = uuid4()
        entry = LedgerEntry(
            title="Rent",
            amount=Decimal("500"),
            entry_date=date(2024, 1, 1),
            recurring_template_id=template_id,
            recurring_month=Month(2024, 1),
        )
        edited = entry.edited("Rent (discount)", Decimal("450"), date(2024, 1, 3))
        assert edited.id == entry.id
        assert edited.recurring_template_id == template_id
        assert edited.recurring_month == Month(2024, 1)
        assert edited.amount == Decimal("450")
        assert edited.is_override is True


class TestRecurringModels:
    """Tests for templates and occurrences."""

    def test_template_start_month(self):
        """Test start_month derivation."""
        template = RecurringExpenseTemplate(title="Gym", amount=Decimal("30"), start_date=date(2021, 1, 31))
        assert template.start_month == Month(2021, 1)
        assert template.active is True

    def test_occurrence_entry_id_is_stable(self):
        """Test that the same occurrence always gets the same id."""
        template_id = uuid4()
        first = Occurrence(
            template_id=template_id,
            month=Month(2020, 2),
            occurrence_date=date(2020, 2, 15),
            title="Gym",
            amount=Decimal("30"),
        )
        second = first.model_copy()
        assert first.entry_id == second.entry_id

        other_month = first.model_copy(update={"month": Month(2020, 3)})
        assert other_month.entry_id != first.entry_id

    def test_occurrence_to_entry_is_virtual(self):
        """Test virtual entry conversion."""
        occurrence = Occurrence(
            template_id=uuid4(),
            month=Month(2020, 2),
            occurrence_date=date(2020, 2, 15),
            title="Gym",
            amount=Decimal("30"),
        )
        entry = occurrence.to_entry()
        assert entry.virtual is True
        assert entry.is_override is False
        assert entry.id == occurrence.entry_id
        assert entry.recurring_month == Month(2020, 2)


class TestEntitlementModels:
    """Tests for entitlement value types."""

    def test_settled_statuses(self):
        """Test that only PREMIUM and NOT_PREMIUM are settled."""
        settled = {s for s in PremiumStatus if s.is_settled}
        assert settled == {PremiumStatus.PREMIUM, PremiumStatus.NOT_PREMIUM}

    def test_billing_result_ok(self):
        """Test BillingResult.ok."""
        assert BillingResult(code=BillingResponseCode.OK).ok is True
        assert BillingResult(code=BillingResponseCode.ERROR).ok is False

    def test_purchase_result_succeeded(self):
        """Test PurchaseResult.succeeded."""
        assert PurchaseResult(outcome=PurchaseOutcome.SUCCESS).succeeded is True
        assert PurchaseResult(outcome=PurchaseOutcome.CANCELLED).succeeded is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            description="Test entry added",
        )
        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            description="Balance adjusted",
            details={"previous_balance": "320", "target_balance": "500"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "balance_adjusted"
        assert log_dict["details"]["target_balance"] == "500"

    def test_audit_event_builder_entry_added(self):
        """Test AuditEventBuilder.entry_added."""
        correlation_id = uuid4()
        entry_id = uuid4()

        event = AuditEventBuilder.entry_added(
            entry_id=entry_id,
            title="Groceries",
            amount="42.50",
            entry_date=date(2024, 1, 5),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.entity_id == entry_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True
        assert event.details["entry_date"] == "2024-01-05"

    def test_audit_event_builder_status_error_is_warning(self):
        """Test that entering ERROR is logged as a warning."""
        event = AuditEventBuilder.premium_status_changed(previous="checking", current="error")
        assert event.event_type == AuditEventType.PREMIUM_STATUS_CHANGED
        assert event.severity == AuditSeverity.WARNING
        assert event.is_user_action is False

    def test_audit_event_builder_unknown_delete(self):
        """Test that deleting an unknown entry is flagged."""
        event = AuditEventBuilder.entry_deleted(entry_id=uuid4(), found=False)
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"found": False}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
