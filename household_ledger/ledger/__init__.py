"""Ledger and balance engine package."""

from household_ledger.ledger.aggregator import BalanceAggregator, PremiumGate
from household_ledger.ledger.errors import (
    LedgerError,
    OccurrenceOutOfRangeError,
    PremiumRequiredError,
    TemplateInactiveError,
    TemplateNotFoundError,
)
from household_ledger.ledger.locking import AsyncReadWriteLock
from household_ledger.ledger.recurrence import RecurrenceExpander

__all__ = [
    "AsyncReadWriteLock",
    "BalanceAggregator",
    "LedgerError",
    "OccurrenceOutOfRangeError",
    "PremiumGate",
    "PremiumRequiredError",
    "RecurrenceExpander",
    "TemplateInactiveError",
    "TemplateNotFoundError",
]
