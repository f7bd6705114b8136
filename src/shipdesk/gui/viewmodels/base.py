"""BaseViewModel: pure Python, no Qt dependency.

Tracks the ``EventBus`` subscriptions a view-model makes so that a single
``dispose()`` detaches it from the bus when the hosting widget goes away.
"""

from __future__ import annotations

from typing import Callable, Type

from shipdesk.events.bus import Event, EventBus, Subscription


class BaseViewModel:
    def __init__(self) -> None:
        self._subscriptions: list[tuple[EventBus, Subscription]] = []

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type[Event],
        handler: Callable,
    ) -> Subscription:
        """Subscribe to an event type and track the subscription."""
        sub = event_bus.subscribe(event_type, handler)
        self._subscriptions.append((event_bus, sub))
        return sub

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def dispose(self) -> None:
        """Remove all tracked event subscriptions from their buses."""
        for bus, sub in self._subscriptions:
            bus.unsubscribe(sub)
        self._subscriptions.clear()
