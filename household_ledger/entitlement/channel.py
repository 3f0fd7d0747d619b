"""
Premium Status Channel

Publish/subscribe channel owned by one entitlement state machine.

Delivery rules:
- synchronous, in subscription order
- every published status is delivered, in publish order, with no coalescing
- a status published from inside a subscriber callback is queued and
  delivered after the current one has reached every subscriber
- a failing subscriber is logged and doesn't stop delivery to the others
"""

from collections import deque
from typing import Callable

import structlog

from household_ledger.models.entitlement import PremiumStatus


logger = structlog.get_logger(__name__)

StatusCallback = Callable[[PremiumStatus], None]


class Subscription:
    """Handle returned by StatusChannel.subscribe."""

    def __init__(self, channel: "StatusChannel", callback: StatusCallback):
        self._channel = channel
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        self._channel.unsubscribe(self)


class StatusChannel:
    """Ordered status-change notifications."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._queue: deque[PremiumStatus] = deque()
        self._delivering = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: StatusCallback) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, status: PremiumStatus) -> None:
        self._queue.append(status)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._queue:
                current = self._queue.popleft()
                for subscription in list(self._subscriptions):
                    if not subscription.active:
                        continue
                    try:
                        subscription.callback(current)
                    except Exception:
                        logger.exception("status_subscriber_failed", status=current.value)
        finally:
            self._delivering = False
