"""
Local Change Feed.

In-process fan-out of payload-less "notes changed" signals. Used by the
in-memory store, and by the hosted-backend adapter to echo its own writes
when no realtime transport is attached.
"""

from dataclasses import dataclass

from modules.client.core.logging import get_logger, log_with_source
from modules.client.remote.base import ChangeCallback, Unsubscribe

logger = get_logger(__name__)


@dataclass(eq=False)
class _Subscription:
    owner_id: str
    callback: ChangeCallback


class LocalChangeFeed:
    """Broadcasts change signals to every subscriber, regardless of owner."""

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(self, owner_id: str, on_change: ChangeCallback) -> Unsubscribe:
        subscription = _Subscription(owner_id=owner_id, callback=on_change)
        self._subscriptions.append(subscription)
        log_with_source(
            logger, "realtime", "debug", "Change feed subscribed",
            owner_id=owner_id, subscribers=len(self._subscriptions),
        )

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
                log_with_source(
                    logger, "realtime", "debug", "Change feed unsubscribed",
                    owner_id=owner_id,
                )

        return unsubscribe

    def publish(self) -> None:
        """Notify every subscriber that something changed."""
        for subscription in list(self._subscriptions):
            subscription.callback()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
