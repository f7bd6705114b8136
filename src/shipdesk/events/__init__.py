from .bus import Event, EventBus, Subscription
from .sync_events import (
    DiagnosticRecordedEvent,
    RefreshRequestedEvent,
    RowSetReplacedEvent,
    SubscriptionStateChangedEvent,
)

__all__ = [
    "DiagnosticRecordedEvent",
    "Event",
    "EventBus",
    "RefreshRequestedEvent",
    "RowSetReplacedEvent",
    "Subscription",
    "SubscriptionStateChangedEvent",
]
