"""
Entitlement Models

Types shared by the premium state machine and the purchase provider
boundary. The provider itself (app store billing, etc.) is external;
these models are the only shape the core relies on.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PremiumStatus(str, Enum):
    """
    Premium check status.

    Only PREMIUM and NOT_PREMIUM are persisted. The other three are
    transient and always re-derived when the process starts.
    """
    INITIALIZING = "initializing"  # Connecting to the provider
    CHECKING = "checking"          # Querying purchase history
    PREMIUM = "premium"
    NOT_PREMIUM = "not_premium"
    ERROR = "error"                # Provider unreachable or failing

    @property
    def is_settled(self) -> bool:
        return self in (PremiumStatus.PREMIUM, PremiumStatus.NOT_PREMIUM)


class BillingResponseCode(str, Enum):
    """Response codes reported by the purchase provider."""
    OK = "ok"
    USER_CANCELED = "user_canceled"
    ITEM_ALREADY_OWNED = "item_already_owned"
    ITEM_UNAVAILABLE = "item_unavailable"
    SERVICE_UNAVAILABLE = "service_unavailable"
    SERVICE_DISCONNECTED = "service_disconnected"
    BILLING_UNAVAILABLE = "billing_unavailable"
    DEVELOPER_ERROR = "developer_error"
    ERROR = "error"


class BillingResult(BaseModel):
    """Result of a provider call."""

    code: BillingResponseCode
    debug_message: str = ""

    @property
    def ok(self) -> bool:
        return self.code == BillingResponseCode.OK


class ProductDetails(BaseModel):
    """Purchasable product as described by the provider."""

    product_id: str = Field(..., min_length=1)
    product_type: str = "inapp"
    title: Optional[str] = None
    price: Optional[str] = Field(
        default=None,
        description="Formatted price, as displayed by the provider"
    )


class Purchase(BaseModel):
    """A purchase reported by the provider after the purchase UI completes."""

    product_id: str = Field(..., min_length=1)
    purchase_token: Optional[str] = None
    purchased_at: Optional[datetime] = None


class PurchaseOutcome(str, Enum):
    """
    Outcome reported to the pending purchase requester.

    An "already owned" conflict is reported as SUCCESS: the user
    ends up premium either way.
    """
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"
    NOTHING_PURCHASED = "nothing_purchased"
    REJECTED = "rejected"  # Purchase not possible in the current status


class PurchaseResult(BaseModel):
    """What the purchase listener receives."""

    outcome: PurchaseOutcome
    message: str = ""
    already_owned: bool = Field(
        default=False,
        description="Success came from an 'already owned' conflict"
    )
    status: Optional[PremiumStatus] = Field(
        default=None,
        description="Status the request was rejected in (REJECTED only)"
    )
    response_code: Optional[BillingResponseCode] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == PurchaseOutcome.SUCCESS
