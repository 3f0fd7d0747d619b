"""
Purchase Provider Interface

The billing provider (an app store, a payment SDK) is external. This is
the narrow contract the entitlement state machine consumes.

Calls are coroutines. A provider signals failure either by returning a
non-OK BillingResult (connect, launch) or by raising ProviderError with
the provider's response code (queries).

The purchase result itself is NOT the return value of launch_purchase_ui:
it arrives later, out of band, through the on_purchases_updated listener.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from household_ledger.entitlement.liveness import LivenessToken
from household_ledger.models.entitlement import (
    BillingResponseCode,
    BillingResult,
    ProductDetails,
    Purchase,
)


PurchasesUpdatedListener = Callable[[BillingResult, Optional[list[Purchase]]], Awaitable[None]]
DisconnectedListener = Callable[[], Awaitable[None]]


class ProviderError(Exception):
    """A provider call failed."""

    def __init__(
        self,
        message: str,
        code: BillingResponseCode = BillingResponseCode.ERROR,
    ):
        self.code = code
        super().__init__(message)


class ProviderUnavailableError(ProviderError):
    """Could not connect to (or hear back from) the provider."""

    def __init__(self, message: str):
        super().__init__(message, BillingResponseCode.SERVICE_UNAVAILABLE)


class PurchaseProviderInterface(ABC):
    """
    Abstract interface for the purchase provider.
    """

    @abstractmethod
    def set_listeners(
        self,
        on_purchases_updated: PurchasesUpdatedListener,
        on_disconnected: DisconnectedListener,
    ) -> None:
        """
        Register the out-of-band callbacks.

        on_purchases_updated: called when a purchase UI flow finishes
        on_disconnected: called when the provider connection drops
        """
        pass

    @abstractmethod
    async def connect(self) -> BillingResult:
        """Open the provider connection."""
        pass

    @abstractmethod
    async def query_purchase_history(self, product_type: str) -> list[str]:
        """
        Product ids the account has ever bought.

        Raises:
            ProviderError: If the query fails
        """
        pass

    @abstractmethod
    async def query_product_details(
        self,
        product_ids: list[str],
        product_type: str,
    ) -> list[ProductDetails]:
        """
        Describe purchasable products.

        Raises:
            ProviderError: If the query fails (code ITEM_ALREADY_OWNED
                           when the account already owns the product)
        """
        pass

    @abstractmethod
    async def launch_purchase_ui(
        self,
        details: ProductDetails,
        requester: LivenessToken,
    ) -> BillingResult:
        """
        Show the provider's purchase UI on behalf of `requester`.

        Returns whether the UI could be launched. The purchase result
        is delivered later through on_purchases_updated.
        """
        pass
