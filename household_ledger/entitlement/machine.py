"""
Entitlement State Machine

Owns the premium status, drives the purchase provider and runs the
purchase flow.

    INITIALIZING --connect ok--> CHECKING --premium owned--> PREMIUM
         |                          |      --not owned----> NOT_PREMIUM
         +--failure--> ERROR <------+--query failed
    NOT_PREMIUM --foreground/recheck--> CHECKING
    ERROR       --foreground/recheck--> INITIALIZING (full setup)
    any         --provider disconnect--> ERROR

PREMIUM is sticky for foreground and recheck. Only PREMIUM and
NOT_PREMIUM are persisted.

The purchase flow keeps at most one pending request. A new request
overwrites the previous one, and the earlier caller is never notified.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from household_ledger.audit.logger import AuditLogger, create_correlation_id
from household_ledger.config import EntitlementSettings, get_settings
from household_ledger.entitlement.channel import StatusCallback, StatusChannel, Subscription
from household_ledger.entitlement.liveness import LivenessToken
from household_ledger.entitlement.provider import (
    ProviderError,
    ProviderUnavailableError,
    PurchaseProviderInterface,
)
from household_ledger.models.entitlement import (
    BillingResponseCode,
    BillingResult,
    PremiumStatus,
    Purchase,
    PurchaseOutcome,
    PurchaseResult,
)
from household_ledger.services.preferences import PreferencesInterface
from household_ledger.services.storage import StorageError


logger = structlog.get_logger(__name__)

T = TypeVar("T")

PurchaseListener = Callable[[PurchaseResult], None]

SERVICE_NAME = "purchase_provider"

REJECTED_ERROR_MESSAGE = (
    "Unable to connect to the store. Check your connection, "
    "restart the app and try again."
)
REJECTED_PREMIUM_MESSAGE = (
    "You already bought Premium with this account. "
    "Restart the app if you don't have access to premium features."
)
NOTHING_PURCHASED_MESSAGE = "No purchased item found"


@dataclass
class _PendingPurchase:
    listener: PurchaseListener
    requester: LivenessToken
    correlation_id: UUID


class EntitlementStateMachine:
    """
    Premium status and purchase flow for one app instance.

    Construct it once and hand the instance to whoever needs it
    (the balance aggregator uses it as its premium gate).
    """

    def __init__(
        self,
        provider: PurchaseProviderInterface,
        preferences: PreferencesInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EntitlementSettings] = None,
    ):
        """
        Initialize the state machine.

        Args:
            provider: Purchase provider to drive
            preferences: Where the settled premium flag is persisted
            audit_logger: Audit logger (optional, creates one if not provided)
            settings: Entitlement settings (defaults from environment)
        """
        self._provider = provider
        self._preferences = preferences
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().entitlement

        self._status = PremiumStatus.INITIALIZING
        self._channel = StatusChannel()
        self._pending: Optional[_PendingPurchase] = None
        self._persisted_premium = bool(preferences.get_premium())

        provider.set_listeners(self.handle_purchases_updated, self.handle_disconnected)

    @property
    def status(self) -> PremiumStatus:
        return self._status

    @property
    def channel(self) -> StatusChannel:
        return self._channel

    @property
    def has_pending_purchase(self) -> bool:
        return self._pending is not None

    def is_premium(self) -> bool:
        """
        Whether premium features are unlocked right now.

        While the status is transient (or ERROR) the last persisted
        value decides, so a premium user isn't locked out while offline.
        """
        if self._status == PremiumStatus.PREMIUM:
            return True
        if self._status == PremiumStatus.NOT_PREMIUM:
            return False
        return self._persisted_premium

    def subscribe(self, callback: StatusCallback) -> Subscription:
        return self._channel.subscribe(callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._channel.unsubscribe(subscription)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Connect to the provider and check purchase history."""
        await self._setup()

    async def on_foreground(self) -> None:
        """
        The app came back to the foreground.

        NOT_PREMIUM re-checks the purchase history (the user may have
        bought premium on another device). ERROR retries the full setup.
        Other statuses are left alone.
        """
        if self._status == PremiumStatus.NOT_PREMIUM:
            await self._check_history()
        elif self._status == PremiumStatus.ERROR:
            await self._setup()

    async def recheck(self) -> None:
        """Explicit re-check request. Same rules as on_foreground."""
        await self.on_foreground()

    async def _setup(self) -> None:
        await self._transition(PremiumStatus.INITIALIZING)

        try:
            result = await self._connect()
        except Exception as e:
            await self._provider_failed("connect", e)
            return

        if not result.ok:
            await self._audit.log_external_service_error(
                service=SERVICE_NAME,
                error_message=result.debug_message or "connect refused",
                error_code=result.code.value,
            )
            await self._transition(PremiumStatus.ERROR)
            return

        await self._check_history()

    async def _connect(self) -> BillingResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.connect_attempts),
            wait=wait_exponential(
                multiplier=self._settings.connect_backoff_min,
                min=self._settings.connect_backoff_min,
                max=self._settings.connect_backoff_max,
            ),
            retry=retry_if_exception_type(ProviderError),
            reraise=True,
        )
        return await retrying(self._connect_once)

    async def _connect_once(self) -> BillingResult:
        result = await self._call(self._provider.connect())
        if result.code == BillingResponseCode.SERVICE_UNAVAILABLE:
            # Transient; worth another attempt
            raise ProviderUnavailableError(result.debug_message or "provider unavailable")
        return result

    async def _check_history(self) -> None:
        await self._transition(PremiumStatus.CHECKING)

        try:
            owned = await self._call(
                self._provider.query_purchase_history(self._settings.product_type)
            )
        except Exception as e:
            await self._provider_failed("query_purchase_history", e)
            return

        if self._settings.premium_product_id in owned:
            await self._transition(PremiumStatus.PREMIUM)
        else:
            await self._transition(PremiumStatus.NOT_PREMIUM)

    async def handle_disconnected(self) -> None:
        """Provider listener: the connection dropped."""
        logger.warning("provider_disconnected", status=self._status.value)
        await self._transition(PremiumStatus.ERROR)

    # ------------------------------------------------------------------
    # Purchase flow
    # ------------------------------------------------------------------

    async def initiate_purchase(
        self,
        requester: LivenessToken,
        listener: PurchaseListener,
    ) -> None:
        """
        Start buying premium on behalf of `requester`.

        The listener receives exactly one PurchaseResult, unless a newer
        request replaces this one or the requester is released first.
        """
        correlation_id = create_correlation_id()

        if self._status != PremiumStatus.NOT_PREMIUM:
            result = PurchaseResult(
                outcome=PurchaseOutcome.REJECTED,
                message=self._rejection_message(self._status),
                status=self._status,
            )
            await self._deliver(_PendingPurchase(listener, requester, correlation_id), result)
            return

        pending = _PendingPurchase(listener, requester, correlation_id)
        if self._pending is not None:
            logger.info("pending_purchase_replaced", previous=self._pending.requester.owner)
        self._pending = pending

        await self._audit.log_purchase_started(
            requester=requester.owner,
            correlation_id=correlation_id,
        )

        try:
            details = await self._call(self._provider.query_product_details(
                [self._settings.premium_product_id],
                self._settings.product_type,
            ))
        except Exception as e:
            code = e.code if isinstance(e, ProviderError) else BillingResponseCode.ERROR
            if code == BillingResponseCode.ITEM_ALREADY_OWNED:
                await self._transition(PremiumStatus.PREMIUM)
                await self._finish(pending, PurchaseResult(
                    outcome=PurchaseOutcome.SUCCESS,
                    already_owned=True,
                    response_code=code,
                ))
                return
            await self._audit.log_external_service_error(
                service=SERVICE_NAME,
                error_message=str(e),
                error_code=code.value,
                correlation_id=correlation_id,
            )
            await self._finish(pending, PurchaseResult(
                outcome=PurchaseOutcome.FAILED,
                message=f"Unable to reach the store (status code: {code.value})",
                response_code=code,
            ))
            return

        if not details:
            await self._finish(pending, PurchaseResult(
                outcome=PurchaseOutcome.FAILED,
                message="Unable to fetch content from the store",
            ))
            return

        if self._pending is not pending or not requester.alive:
            logger.info(
                "purchase_launch_skipped",
                replaced=self._pending is not pending,
                requester_alive=requester.alive,
            )
            return

        try:
            launch = await self._call(self._provider.launch_purchase_ui(details[0], requester))
        except Exception as e:
            code = e.code if isinstance(e, ProviderError) else BillingResponseCode.ERROR
            await self._audit.log_external_service_error(
                service=SERVICE_NAME,
                error_message=f"launch_purchase_ui: {e}",
                error_code=code.value,
                correlation_id=correlation_id,
            )
            await self._finish(pending, PurchaseResult(
                outcome=PurchaseOutcome.FAILED,
                message=f"Unable to start the purchase (status code: {code.value})",
                response_code=code,
            ))
            return

        if not launch.ok:
            await self._finish(pending, PurchaseResult(
                outcome=PurchaseOutcome.FAILED,
                message=f"Unable to start the purchase (status code: {launch.code.value})",
                response_code=launch.code,
            ))

    async def handle_purchases_updated(
        self,
        result: BillingResult,
        purchases: Optional[list[Purchase]],
    ) -> None:
        """Provider listener: the purchase UI finished."""
        pending = self._pending
        self._pending = None

        if result.code == BillingResponseCode.USER_CANCELED:
            outcome = PurchaseResult(
                outcome=PurchaseOutcome.CANCELLED,
                response_code=result.code,
            )
        elif result.code == BillingResponseCode.ITEM_ALREADY_OWNED:
            await self._transition(PremiumStatus.PREMIUM)
            outcome = PurchaseResult(
                outcome=PurchaseOutcome.SUCCESS,
                already_owned=True,
                response_code=result.code,
            )
        elif not result.ok:
            outcome = PurchaseResult(
                outcome=PurchaseOutcome.FAILED,
                message=f"An error occurred (status code: {result.code.value})",
                response_code=result.code,
            )
        elif not any(p.product_id == self._settings.premium_product_id for p in purchases or []):
            outcome = PurchaseResult(
                outcome=PurchaseOutcome.NOTHING_PURCHASED,
                message=NOTHING_PURCHASED_MESSAGE,
                response_code=result.code,
            )
        else:
            await self._transition(PremiumStatus.PREMIUM)
            outcome = PurchaseResult(
                outcome=PurchaseOutcome.SUCCESS,
                response_code=result.code,
            )

        if pending is None:
            logger.info("purchase_result_without_request", outcome=outcome.outcome.value)
            return

        await self._deliver(pending, outcome)

    async def _finish(self, pending: _PendingPurchase, result: PurchaseResult) -> None:
        # A replaced request is never notified
        if self._pending is not pending:
            logger.info("stale_purchase_result_dropped", outcome=result.outcome.value)
            return
        self._pending = None
        await self._deliver(pending, result)

    async def _deliver(self, pending: _PendingPurchase, result: PurchaseResult) -> None:
        delivered = pending.requester.alive
        if delivered:
            try:
                pending.listener(result)
            except Exception as e:
                logger.exception("purchase_listener_failed", outcome=result.outcome.value)
                await self._audit.log_error(
                    error_type="purchase_listener_failed",
                    error_message=str(e),
                    details={"outcome": result.outcome.value},
                    correlation_id=pending.correlation_id,
                )

        await self._audit.log_purchase_completed(
            outcome=result.outcome.value,
            message=result.message,
            delivered=delivered,
            correlation_id=pending.correlation_id,
        )

    @staticmethod
    def _rejection_message(status: PremiumStatus) -> str:
        if status == PremiumStatus.ERROR:
            return REJECTED_ERROR_MESSAGE
        if status == PremiumStatus.PREMIUM:
            return REJECTED_PREMIUM_MESSAGE
        return f"Premium status is still being checked ({status.value}). Please try again in a moment."

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _call(self, awaitable: Awaitable[T]) -> T:
        timeout = self._settings.provider_timeout_seconds
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError:
            raise ProviderUnavailableError(f"provider did not answer within {timeout}s")

    async def _provider_failed(self, operation: str, error: Exception) -> None:
        code = error.code.value if isinstance(error, ProviderError) else None
        logger.warning(
            "provider_call_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
        )
        await self._audit.log_external_service_error(
            service=SERVICE_NAME,
            error_message=f"{operation}: {error}",
            error_code=code,
        )
        await self._transition(PremiumStatus.ERROR)

    async def _transition(self, status: PremiumStatus) -> None:
        previous = self._status
        self._status = status

        persist_error = None
        if status.is_settled:
            premium = status == PremiumStatus.PREMIUM
            self._persisted_premium = premium
            try:
                self._preferences.set_premium(premium)
            except StorageError as e:
                logger.error("premium_flag_not_persisted", error=str(e))
                persist_error = e

        self._channel.publish(status)

        if persist_error is not None:
            await self._audit.log_error(
                error_type="premium_flag_not_persisted",
                error_message=str(persist_error),
                details={"status": status.value},
            )

        await self._audit.log_premium_status_changed(
            previous=previous.value,
            current=status.value,
        )
