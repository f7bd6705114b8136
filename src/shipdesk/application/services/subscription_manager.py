"""Lifetime of the change-event subscription for one table instance."""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from shipdesk.application.interfaces import StreamingTransport
from shipdesk.application.services.change_decoder import ChangeEventDecoder
from shipdesk.config import CHANGE_CHANNEL, REPLAY_NEW_EVENTS_ONLY
from shipdesk.domain.models import ChangeNotification
from shipdesk.errors.handler import DiagnosticKind, DiagnosticsSink
from shipdesk.events.bus import EventBus
from shipdesk.events.sync_events import SubscriptionStateChangedEvent

LOGGER = logging.getLogger(__name__)

NotificationHandler = Callable[[ChangeNotification], Union[Awaitable[None], None]]


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBING = "unsubscribing"


class SubscriptionManager:
    """Owns the single streaming subscription of a component instance.

    The handle is written only here.  A detach that arrives while a subscribe
    is still in flight is remembered and honoured once the transport answers,
    so the handle never outlives the host.
    """

    def __init__(
        self,
        transport: StreamingTransport,
        diagnostics: DiagnosticsSink,
        *,
        channel: str = CHANGE_CHANNEL,
        replay_from: int = REPLAY_NEW_EVENTS_ONLY,
        decoder: Optional[ChangeEventDecoder] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._transport = transport
        self._diagnostics = diagnostics
        self._channel = channel
        self._replay_from = replay_from
        self._decoder = decoder or ChangeEventDecoder(diagnostics)
        self._events = event_bus

        self._state = SubscriptionState.UNSUBSCRIBED
        self._handle: Any = None
        self._handler: Optional[NotificationHandler] = None
        self._detach_requested = False
        self._error_listener_registered = False

    # -- properties --------------------------------------------------------

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def handle(self) -> Any:
        return self._handle

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def error_listener_registered(self) -> bool:
        return self._error_listener_registered

    # -- public API --------------------------------------------------------

    def register_error_listener(self) -> None:
        """Register the streaming error listener; later calls are no-ops."""
        if self._error_listener_registered:
            return
        self._transport.on_error(self._on_stream_error)
        self._error_listener_registered = True

    async def subscribe(self, on_notification: NotificationHandler) -> Any:
        """Subscribe to the change channel and return the handle, or ``None``."""
        if self._state is not SubscriptionState.UNSUBSCRIBED:
            LOGGER.warning(
                "Subscribe ignored for %s: subscription is %s",
                self._channel,
                self._state.value,
            )
            return self._handle

        self._handler = on_notification
        self._detach_requested = False
        self._set_state(SubscriptionState.SUBSCRIBING)
        try:
            handle = await self._transport.subscribe(
                self._channel, self._replay_from, self._on_message
            )
        except Exception as exc:
            self._handler = None
            self._set_state(SubscriptionState.UNSUBSCRIBED)
            self._diagnostics.record(
                DiagnosticKind.SUBSCRIPTION_FAILURE,
                {"error": str(exc), "channel": self._channel, "operation": "subscribe"},
            )
            return None

        self._handle = handle
        self._set_state(SubscriptionState.SUBSCRIBED)
        LOGGER.info("Subscribed to %s", self._channel)

        if self._detach_requested:
            await self.unsubscribe()
            return None
        return handle

    async def unsubscribe(self) -> None:
        """Release the subscription; failures are reported, never raised."""
        if self._state in (SubscriptionState.UNSUBSCRIBED, SubscriptionState.UNSUBSCRIBING):
            return
        if self._state is SubscriptionState.SUBSCRIBING:
            self._detach_requested = True
            return

        handle = self._handle
        self._set_state(SubscriptionState.UNSUBSCRIBING)
        try:
            ack = await self._transport.unsubscribe(handle)
        except Exception as exc:
            self._diagnostics.record(
                DiagnosticKind.SUBSCRIPTION_FAILURE,
                {"error": str(exc), "channel": self._channel, "operation": "unsubscribe"},
            )
        else:
            self._diagnostics.record(
                DiagnosticKind.UNSUBSCRIBED,
                {"channel": self._channel, "ack": ack},
            )
        finally:
            self._handle = None
            self._handler = None
            self._detach_requested = False
            self._set_state(SubscriptionState.UNSUBSCRIBED)

    # -- internal ----------------------------------------------------------

    async def _on_message(self, payload: Any) -> None:
        if self._state is not SubscriptionState.SUBSCRIBED or self._handler is None:
            LOGGER.debug("Dropping change event received while %s", self._state.value)
            return
        notification = self._decoder.decode(payload)
        if notification is None:
            return
        result = self._handler(notification)
        if inspect.isawaitable(result):
            await result

    def _on_stream_error(self, error: Any) -> None:
        self._diagnostics.record(
            DiagnosticKind.STREAM_ERROR,
            {"error": str(error), "channel": self._channel},
        )

    def _set_state(self, state: SubscriptionState) -> None:
        self._state = state
        if self._events is not None:
            self._events.publish(
                SubscriptionStateChangedEvent(state=state.value, channel=self._channel)
            )
