"""
Main Orchestrator for the Household Ledger

This module ties the components together:
1. Ledger (store → balance aggregator)
2. Entitlement (purchase provider → state machine → premium gate)
3. Audit (one AuditLogger shared by both)

DESIGN DECISION: There are no globals. The entitlement state machine is
an explicitly owned instance and is handed to the aggregator as its
premium gate, so "is premium" has exactly one source of truth.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from household_ledger.audit import AuditLogger, configure_logging
from household_ledger.config import get_settings
from household_ledger.entitlement import EntitlementStateMachine, PurchaseProviderInterface
from household_ledger.ledger import BalanceAggregator
from household_ledger.services.preferences import (
    InMemoryPreferences,
    JsonFilePreferences,
    PreferencesInterface,
)
from household_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerStoreInterface,
)


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a host application needs, already wired."""

    aggregator: BalanceAggregator
    entitlement: Optional[EntitlementStateMachine]
    audit_logger: AuditLogger

    async def start(self) -> None:
        """Run the first premium check (no-op without a provider)."""
        if self.entitlement is not None:
            await self.entitlement.start()


def create_app_components(
    store: Optional[LedgerStoreInterface] = None,
    provider: Optional[PurchaseProviderInterface] = None,
    preferences: Optional[PreferencesInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Ledger store. Defaults to an in-memory store.
        provider: Purchase provider. Without one there is no entitlement
                  machine and premium-only actions are denied.
        preferences: Persisted preferences. Defaults to a JSON file when
                     ENTITLEMENT_PREFERENCES_PATH is set, memory otherwise.
        audit_storage: Where audit events are appended. Defaults to memory.

    Returns:
        AppComponents(aggregator, entitlement, audit_logger)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    entitlement = None
    if provider is not None:
        if preferences is None:
            path = settings.entitlement.preferences_path
            preferences = JsonFilePreferences(path) if path else InMemoryPreferences()
        entitlement = EntitlementStateMachine(
            provider=provider,
            preferences=preferences,
            audit_logger=audit_logger,
            settings=settings.entitlement,
        )
    else:
        logger.warning("no_purchase_provider", detail="premium features disabled")

    aggregator = BalanceAggregator(
        store=store or InMemoryLedgerStore(),
        gate=entitlement,
        audit_logger=audit_logger,
        settings=settings.ledger,
    )

    return AppComponents(
        aggregator=aggregator,
        entitlement=entitlement,
        audit_logger=audit_logger,
    )
