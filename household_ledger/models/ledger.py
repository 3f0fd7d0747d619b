"""
Core Data Models for the Household Ledger

These models define the strict schemas for everything stored in,
or derived from, the ledger. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

SIGN CONVENTION: amounts are signed. Positive is money going out
(an expense), negative is money coming in (an income).

DESIGN DECISION: We use Pydantic v2 models and Decimal amounts.
Float rounding has no place in a running balance.
"""

import calendar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional
from uuid import UUID, uuid4, uuid5

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# CALENDAR MONTH
# =============================================================================

class Month(NamedTuple):
    """
    A calendar month, used as the key for recurring overrides and exclusions.

    Hashable and ordered (year first), so it works as a dict key and in ranges.
    """
    year: int
    month: int

    @classmethod
    def of(cls, day: date) -> "Month":
        return cls(day.year, day.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def day(self, day_of_month: int) -> date:
        """Date for `day_of_month` in this month, clamped to the month's last day."""
        last = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, min(day_of_month, last))

    def next(self) -> "Month":
        if self.month == 12:
            return Month(self.year + 1, 1)
        return Month(self.year, self.month + 1)

    def months_until(self, other: "Month") -> int:
        """Number of month steps from self to other (negative if other is earlier)."""
        return (other.year - self.year) * 12 + (other.month - self.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# =============================================================================
# ENUMS
# =============================================================================

class BalanceLevel(str, Enum):
    """
    How healthy a balance is, as shown on the main screen.

    NEGATIVE: nothing left (balance <= 0)
    LOW: under the configured warning amount
    HEALTHY: everything else
    """
    NEGATIVE = "negative"
    LOW = "low"
    HEALTHY = "healthy"


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    A concrete, dated monetary movement.

    Identity (`id`) and the recurring back-reference are fixed at creation.
    Edits replace title, amount and date only.

    An entry with `recurring_template_id` set is an override: the materialized
    occurrence of a recurring template for `recurring_month`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry ID"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display title"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: positive = expense, negative = income"
    )
    entry_date: date = Field(
        ...,
        description="Day the movement happens"
    )

    # Recurring back-reference (overrides only)
    recurring_template_id: Optional[UUID] = Field(
        default=None,
        description="Template this entry overrides one month of"
    )
    recurring_month: Optional[Month] = Field(
        default=None,
        description="Template month this entry replaces"
    )

    # Produced on read from a template, never stored
    virtual: bool = Field(
        default=False,
        description="True for an unmaterialized occurrence of a template"
    )

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="When the entry was created"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Amounts must be finite and non-zero."""
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        if v == 0:
            raise ValueError("Amount cannot be zero")
        return v

    @model_validator(mode='after')
    def validate_recurring_reference(self) -> 'LedgerEntry':
        """Template id and month go together."""
        if (self.recurring_template_id is None) != (self.recurring_month is None):
            raise ValueError(
                "recurring_template_id and recurring_month must be set together"
            )
        return self

    @property
    def is_override(self) -> bool:
        return self.recurring_template_id is not None and not self.virtual

    @property
    def is_revenue(self) -> bool:
        return self.amount < 0

    def edited(self, title: str, amount: Decimal, entry_date: date) -> "LedgerEntry":
        """Copy of this entry with new title, amount and date. Identity is kept."""
        return LedgerEntry(
            id=self.id,
            title=title,
            amount=amount,
            entry_date=entry_date,
            recurring_template_id=self.recurring_template_id,
            recurring_month=self.recurring_month,
            created_at=self.created_at,
        )


# =============================================================================
# RECURRING EXPENSE TEMPLATE
# =============================================================================

class RecurringExpenseTemplate(BaseModel):
    """
    An authored monthly rule. Not a ledger movement by itself.

    It produces one occurrence per calendar month, on the day-of-month
    of `start_date`, from `start_date` on, forever.

    Templates are never removed, only deactivated: materialized overrides
    keep pointing at them.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique template ID"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Title given to every occurrence"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount of every occurrence"
    )
    start_date: date = Field(
        ...,
        description="First day the rule applies"
    )
    active: bool = Field(
        default=True,
        description="Inactive templates produce no occurrences"
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="When the template was created"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Amounts must be finite and non-zero."""
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        if v == 0:
            raise ValueError("Amount cannot be zero")
        return v

    @property
    def start_month(self) -> Month:
        return Month.of(self.start_date)


class Occurrence(BaseModel):
    """One month's virtual movement derived from a template."""

    template_id: UUID
    month: Month
    occurrence_date: date
    title: str
    amount: Decimal

    @property
    def entry_id(self) -> UUID:
        """Stable id, so the same occurrence always reads back the same way."""
        return uuid5(self.template_id, str(self.month))

    def to_entry(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.entry_id,
            title=self.title,
            amount=self.amount,
            entry_date=self.occurrence_date,
            recurring_template_id=self.template_id,
            recurring_month=self.month,
            virtual=True,
        )
