"""Premium entitlement package: state machine, status channel, provider contract."""

from household_ledger.entitlement.channel import StatusCallback, StatusChannel, Subscription
from household_ledger.entitlement.liveness import LivenessToken
from household_ledger.entitlement.machine import (
    NOTHING_PURCHASED_MESSAGE,
    REJECTED_ERROR_MESSAGE,
    REJECTED_PREMIUM_MESSAGE,
    EntitlementStateMachine,
    PurchaseListener,
)
from household_ledger.entitlement.provider import (
    DisconnectedListener,
    ProviderError,
    ProviderUnavailableError,
    PurchaseProviderInterface,
    PurchasesUpdatedListener,
)

__all__ = [
    "DisconnectedListener",
    "EntitlementStateMachine",
    "LivenessToken",
    "NOTHING_PURCHASED_MESSAGE",
    "ProviderError",
    "ProviderUnavailableError",
    "PurchaseListener",
    "PurchaseProviderInterface",
    "PurchasesUpdatedListener",
    "REJECTED_ERROR_MESSAGE",
    "REJECTED_PREMIUM_MESSAGE",
    "StatusCallback",
    "StatusChannel",
    "Subscription",
]
