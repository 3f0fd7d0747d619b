"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the engine must conform to these schemas.
"""

from household_ledger.models.ledger import (
    BalanceLevel,
    LedgerEntry,
    Month,
    Occurrence,
    RecurringExpenseTemplate,
)
from household_ledger.models.entitlement import (
    BillingResponseCode,
    BillingResult,
    PremiumStatus,
    ProductDetails,
    Purchase,
    PurchaseOutcome,
    PurchaseResult,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BalanceLevel",
    "LedgerEntry",
    "Month",
    "Occurrence",
    "RecurringExpenseTemplate",
    # Entitlement models
    "BillingResponseCode",
    "BillingResult",
    "PremiumStatus",
    "ProductDetails",
    "Purchase",
    "PurchaseOutcome",
    "PurchaseResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
