"""Wiring of the shipment table components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .application.interfaces import (
    BulkFetchService,
    NavigationService,
    PersistenceService,
    StreamingTransport,
)
from .application.services.change_decoder import ChangeEventDecoder
from .application.services.row_action_dispatcher import RowActionDispatcher
from .application.services.row_cache import RowCache
from .application.services.subscription_manager import SubscriptionManager
from .application.services.sync_controller import SyncController
from .domain.models import ShipmentRecord
from .errors.handler import DiagnosticsHandler, DiagnosticsSink
from .events.bus import EventBus
from .gui.services.navigation_service import RecordNavigationService
from .gui.viewmodels.shipment_table_viewmodel import ShipmentTableViewModel
from .settings.manager import SettingsManager
from .utils.logging import get_logger


@dataclass
class AppContext:
    """Container object shared by the table's host (widget, CLI or test)."""

    settings: SettingsManager
    event_bus: EventBus
    diagnostics: DiagnosticsSink
    fetch_service: BulkFetchService
    persistence: PersistenceService
    transport: StreamingTransport
    navigation: NavigationService
    cache: RowCache
    subscription: SubscriptionManager
    controller: SyncController
    dispatcher: RowActionDispatcher
    viewmodel: ShipmentTableViewModel


def _default_settings() -> SettingsManager:
    manager = SettingsManager()
    manager.load(write_defaults=False)
    return manager


def build_context(
    *,
    fetch_service: BulkFetchService,
    persistence: PersistenceService,
    transport: StreamingTransport,
    navigation: Optional[NavigationService] = None,
    settings: Optional[SettingsManager] = None,
    event_bus: Optional[EventBus] = None,
    diagnostics: Optional[DiagnosticsSink] = None,
) -> AppContext:
    """Assemble the sync core around the given collaborators."""

    settings = settings or _default_settings()
    event_bus = event_bus or EventBus()
    diagnostics = diagnostics or DiagnosticsHandler(get_logger("diagnostics"), event_bus)
    navigation = navigation or RecordNavigationService()

    cache = RowCache()
    subscription = SubscriptionManager(
        transport,
        diagnostics,
        channel=settings.get("stream.channel"),
        replay_from=settings.get("stream.replay_from"),
        decoder=ChangeEventDecoder(diagnostics),
        event_bus=event_bus,
    )
    controller = SyncController(fetch_service, cache, subscription, diagnostics, event_bus)
    dispatcher = RowActionDispatcher(
        persistence,
        controller,
        navigation,
        diagnostics,
        assigned_status=settings.get("statuses.assigned"),
        review_status=settings.get("statuses.in_review"),
        object_type=settings.get("object_api_name"),
    )
    viewmodel = ShipmentTableViewModel(controller, dispatcher, event_bus)
    return AppContext(
        settings=settings,
        event_bus=event_bus,
        diagnostics=diagnostics,
        fetch_service=fetch_service,
        persistence=persistence,
        transport=transport,
        navigation=navigation,
        cache=cache,
        subscription=subscription,
        controller=controller,
        dispatcher=dispatcher,
        viewmodel=viewmodel,
    )


def create_headless_context(
    records: Iterable[ShipmentRecord] = (),
    *,
    settings: Optional[SettingsManager] = None,
    event_bus: Optional[EventBus] = None,
) -> AppContext:
    """Context backed by the in-memory store and transport."""

    from .infrastructure.memory_store import InMemoryShipmentStore
    from .infrastructure.memory_transport import InMemoryStreamingTransport

    settings = settings or _default_settings()
    transport = InMemoryStreamingTransport()
    store = InMemoryShipmentStore(
        records,
        transport=transport,
        channel=settings.get("stream.channel"),
        allowed_statuses=settings.get("statuses.allowed"),
    )
    return build_context(
        fetch_service=store,
        persistence=store,
        transport=transport,
        settings=settings,
        event_bus=event_bus,
    )
