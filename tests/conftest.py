"""
Shared fixtures for the household ledger tests.

Everything runs against in-memory stores and a scripted purchase
provider. No network, no files (except tmp_path where a test asks).
"""

import asyncio
from typing import Optional

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.config import EntitlementSettings, LedgerSettings
from household_ledger.entitlement import (
    EntitlementStateMachine,
    LivenessToken,
    PurchaseProviderInterface,
)
from household_ledger.ledger import BalanceAggregator
from household_ledger.models.entitlement import (
    BillingResponseCode,
    BillingResult,
    ProductDetails,
    Purchase,
)
from household_ledger.services.preferences import InMemoryPreferences
from household_ledger.services.storage import InMemoryAuditStorage, InMemoryLedgerStore


OK = BillingResult(code=BillingResponseCode.OK)


class StaticGate:
    """Premium gate with a fixed answer."""

    def __init__(self, premium: bool):
        self.premium = premium

    def is_premium(self) -> bool:
        return self.premium


class SuspendingLedgerStore(InMemoryLedgerStore):
    """
    In-memory store that yields to the event loop on every call.

    Other coroutines can run between the steps of a multi-step mutation,
    so only the ledger lock keeps readers from seeing it half applied.
    """

    async def add_entry(self, entry):
        await asyncio.sleep(0)
        return await super().add_entry(entry)

    async def get_entry(self, entry_id):
        await asyncio.sleep(0)
        return await super().get_entry(entry_id)

    async def update_entry(self, entry):
        await asyncio.sleep(0)
        return await super().update_entry(entry)

    async def delete_entry(self, entry_id):
        await asyncio.sleep(0)
        return await super().delete_entry(entry_id)

    async def entries_in_range(self, date_from, date_to):
        await asyncio.sleep(0)
        return await super().entries_in_range(date_from, date_to)

    async def add_template(self, template):
        await asyncio.sleep(0)
        return await super().add_template(template)

    async def get_template(self, template_id):
        await asyncio.sleep(0)
        return await super().get_template(template_id)

    async def list_templates(self):
        await asyncio.sleep(0)
        return await super().list_templates()

    async def active_templates(self):
        await asyncio.sleep(0)
        return await super().active_templates()

    async def deactivate_template(self, template_id):
        await asyncio.sleep(0)
        return await super().deactivate_template(template_id)

    async def record_override(self, template_id, month, entry):
        await asyncio.sleep(0)
        return await super().record_override(template_id, month, entry)

    async def get_override(self, template_id, month):
        await asyncio.sleep(0)
        return await super().get_override(template_id, month)

    async def record_exclusion(self, template_id, month):
        await asyncio.sleep(0)
        return await super().record_exclusion(template_id, month)

    async def skipped_months(self, template_id):
        await asyncio.sleep(0)
        return await super().skipped_months(template_id)


class FakeProvider(PurchaseProviderInterface):
    """
    Scripted purchase provider.

    connect_results are returned in order (the last one repeats).
    Set history_gate to an asyncio.Event to hold history queries until
    the test releases them.
    """

    def __init__(
        self,
        connect_results: Optional[list[BillingResult]] = None,
        owned: Optional[list[str]] = None,
        details: Optional[list[ProductDetails]] = None,
    ):
        self.connect_results = connect_results or [OK]
        self.connect_error: Optional[Exception] = None
        self.owned = owned or []
        self.history_error: Optional[Exception] = None
        self.history_gate: Optional[asyncio.Event] = None
        self.details = details if details is not None else [ProductDetails(product_id="premium")]
        self.details_error: Optional[Exception] = None
        self.launch_result = OK
        self.launch_error: Optional[Exception] = None

        self.connect_calls = 0
        self.history_calls = 0
        self.details_calls = 0
        self.launched: list[tuple[ProductDetails, LivenessToken]] = []

        self.on_purchases_updated = None
        self.on_disconnected = None

    def set_listeners(self, on_purchases_updated, on_disconnected) -> None:
        self.on_purchases_updated = on_purchases_updated
        self.on_disconnected = on_disconnected

    async def connect(self) -> BillingResult:
        index = min(self.connect_calls, len(self.connect_results) - 1)
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        return self.connect_results[index]

    async def query_purchase_history(self, product_type: str) -> list[str]:
        self.history_calls += 1
        if self.history_gate is not None:
            await self.history_gate.wait()
        if self.history_error is not None:
            raise self.history_error
        return list(self.owned)

    async def query_product_details(self, product_ids, product_type):
        self.details_calls += 1
        if self.details_error is not None:
            raise self.details_error
        return list(self.details)

    async def launch_purchase_ui(self, details, requester) -> BillingResult:
        self.launched.append((details, requester))
        if self.launch_error is not None:
            raise self.launch_error
        return self.launch_result

    # Test helpers: simulate the provider calling back

    async def finish_purchase(
        self,
        code: BillingResponseCode = BillingResponseCode.OK,
        purchases: Optional[list[Purchase]] = None,
    ) -> None:
        await self.on_purchases_updated(BillingResult(code=code), purchases)

    async def drop_connection(self) -> None:
        await self.on_disconnected()


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        low_money_warning_amount=100,
        adjustment_title="Balance adjustment",
        amount_places=2,
    )


@pytest.fixture
def entitlement_settings():
    # No backoff so failure paths don't sleep
    return EntitlementSettings(
        premium_product_id="premium",
        product_type="inapp",
        connect_attempts=1,
        connect_backoff_min=0,
        connect_backoff_max=0,
        provider_timeout_seconds=None,
    )


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def premium_gate():
    return StaticGate(premium=True)


@pytest.fixture
def aggregator(store, premium_gate, audit_logger, ledger_settings):
    return BalanceAggregator(
        store=store,
        gate=premium_gate,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def preferences():
    return InMemoryPreferences()


@pytest.fixture
def machine(provider, preferences, audit_logger, entitlement_settings):
    return EntitlementStateMachine(
        provider=provider,
        preferences=preferences,
        audit_logger=audit_logger,
        settings=entitlement_settings,
    )
