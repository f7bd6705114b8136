"""In-process streaming transport.

Stands in for the platform's pub/sub client when the table runs headless
(CLI, tests).  Payloads are wrapped in the same envelope the real client
delivers, with a monotonically increasing replay id.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List

from shipdesk.application.interfaces import ErrorListener, MessageHandler, StreamingTransport
from shipdesk.errors import SubscriptionFailure

LOGGER = logging.getLogger(__name__)


@dataclass
class TransportSubscription:
    channel: str
    replay_from: int
    handler: MessageHandler = field(repr=False)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class InMemoryStreamingTransport(StreamingTransport):
    def __init__(self) -> None:
        self._subscriptions: Dict[str, TransportSubscription] = {}
        self._error_listeners: List[ErrorListener] = []
        self._replay_id = 0

    @property
    def active_subscriptions(self) -> List[TransportSubscription]:
        return list(self._subscriptions.values())

    @property
    def error_listener_count(self) -> int:
        return len(self._error_listeners)

    async def subscribe(self, channel: str, replay_from: int, on_message: MessageHandler) -> TransportSubscription:
        if not channel.startswith("/"):
            raise SubscriptionFailure(f"invalid channel name {channel!r}")
        subscription = TransportSubscription(channel=channel, replay_from=replay_from, handler=on_message)
        self._subscriptions[subscription.id] = subscription
        LOGGER.debug("Subscription %s opened on %s", subscription.id, channel)
        return subscription

    async def unsubscribe(self, handle: Any) -> Dict[str, Any]:
        subscription_id = getattr(handle, "id", None)
        if subscription_id not in self._subscriptions:
            raise SubscriptionFailure(f"unknown subscription {handle!r}")
        subscription = self._subscriptions.pop(subscription_id)
        return {"successful": True, "subscription": subscription.channel}

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    async def publish(self, channel: str, payload: Dict[str, Any]) -> int:
        """Deliver *payload* to every subscriber of *channel*; return the replay id."""
        self._replay_id += 1
        envelope = {
            "channel": channel,
            "data": {"event": {"replayId": self._replay_id}, "payload": payload},
        }
        for subscription in list(self._subscriptions.values()):
            if subscription.channel != channel:
                continue
            try:
                result = subscription.handler(envelope)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                LOGGER.error("Subscriber %s failed: %s", subscription.id, exc)
                self.emit_error({"subscription": subscription.id, "error": str(exc)})
        return self._replay_id

    def emit_error(self, error: Any) -> None:
        for listener in list(self._error_listeners):
            listener(error)
