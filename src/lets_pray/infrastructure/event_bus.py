"""In-memory event bus implementation."""

import inspect
import logging
from collections import defaultdict

from lets_pray.domain.events import DomainEvent
from lets_pray.services.ports import EventBusPort, EventHandler, Subscription

logger = logging.getLogger(__name__)


class InMemorySubscription(Subscription):
    """Subscription handle of the in-memory bus."""

    def __init__(self, bus: "InMemoryEventBus", event_type: type[DomainEvent], handler: EventHandler) -> None:
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._bus._remove(self)


class InMemoryEventBus(EventBusPort):
    """Simple in-memory event bus; handlers may be sync or async."""

    def __init__(self) -> None:
        """Initialize event bus."""
        self._subscriptions: dict[type[DomainEvent], list[InMemorySubscription]] = defaultdict(list)

    async def publish(self, event: DomainEvent) -> None:
        """Publish an event."""
        event_type = type(event)
        subscriptions = list(self._subscriptions.get(event_type, []))

        logger.debug(f"Event published: {event_type.__name__} ({len(subscriptions)} handlers)")

        for subscription in subscriptions:
            # A handler may cancel a later subscription while we iterate.
            if not subscription.active:
                continue
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler error ({event_type.__name__}): {e}")

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> InMemorySubscription:
        """Subscribe to an event type."""
        subscription = InMemorySubscription(self, event_type, handler)
        self._subscriptions[event_type].append(subscription)
        logger.debug(f"Event subscription: {event_type.__name__}")
        return subscription

    def _remove(self, subscription: InMemorySubscription) -> None:
        handlers = self._subscriptions.get(subscription.event_type, [])
        if subscription in handlers:
            handlers.remove(subscription)
            logger.debug(f"Event subscription cancelled: {subscription.event_type.__name__}")

    def subscriber_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._subscriptions.get(event_type, []))

    def clear_all(self) -> None:
        """Cancel every subscription."""
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                subscription.cancel()
        self._subscriptions.clear()
