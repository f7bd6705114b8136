"""Pure Python view-model of the shipment request table, no Qt dependency.

Hosts the sync core: ``attach()``/``detach()`` map the widget lifecycle onto
``SyncController.start()``/``stop()``.  The rows shown are always the cached
server rows; unsaved inline edits live in a separate ``PendingEdits`` overlay
until ``save()`` commits them.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from shipdesk.application.dtos import EditCommitResult, ManualRefresh, RefreshDecision
from shipdesk.application.services.row_action_dispatcher import RowActionDispatcher
from shipdesk.application.services.sync_controller import SyncController
from shipdesk.domain.models import PendingEdits, Row
from shipdesk.errors import RecordNotFoundError
from shipdesk.events.bus import EventBus
from shipdesk.events.sync_events import DiagnosticRecordedEvent, RowSetReplacedEvent
from shipdesk.gui.viewmodels.base import BaseViewModel
from shipdesk.gui.viewmodels.signal import ObservableProperty, Signal


class ShipmentTableViewModel(BaseViewModel):
    def __init__(
        self,
        controller: SyncController,
        dispatcher: RowActionDispatcher,
        event_bus: EventBus,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._dispatcher = dispatcher
        self._logger = logging.getLogger(__name__)
        self.pending = PendingEdits()

        # Observable properties
        self.rows = ObservableProperty(())
        self.attached = ObservableProperty(False)
        self.saving = ObservableProperty(False)

        # Signals
        self.rows_updated = Signal()  # emits (rows: tuple[Row, ...])
        self.drafts_changed = Signal()  # emits (pending_row_count: int)
        self.error_occurred = Signal()  # emits (kind: str, message: str)

        self.subscribe_event(event_bus, RowSetReplacedEvent, self._on_rows_replaced)
        self.subscribe_event(event_bus, DiagnosticRecordedEvent, self._on_diagnostic)

    # -- lifecycle ---------------------------------------------------------

    async def attach(self) -> None:
        self.attached.value = True
        await self._controller.start()

    async def detach(self) -> None:
        await self._controller.stop()
        self.attached.value = False

    # -- reading -----------------------------------------------------------

    @property
    def row_count(self) -> int:
        return len(self.rows.value)

    def row_at(self, index: int) -> Optional[Row]:
        rows = self.rows.value
        if 0 <= index < len(rows):
            return rows[index]
        return None

    def find_row(self, record_id: str) -> Optional[Row]:
        for row in self.rows.value:
            if row.id == record_id:
                return row
        return None

    def display_value(self, row: Row, field_name: str) -> Any:
        """Value to show in a cell: the unsaved draft if any, else the server value."""
        if self.pending.has_draft(row.id, field_name):
            return self.pending.value_for(row.id, field_name)
        return row.get(field_name)

    # -- editing -----------------------------------------------------------

    def stage_edit(self, record_id: str, field_name: str, value: Any) -> None:
        if self.find_row(record_id) is None:
            raise RecordNotFoundError(record_id)
        self.pending.stage(record_id, field_name, value)
        self.drafts_changed.emit(len(self.pending))

    def cancel_edits(self) -> None:
        if self.pending:
            self.pending.clear()
            self.drafts_changed.emit(0)

    async def save(self) -> EditCommitResult:
        self.saving.value = True
        try:
            result = await self._dispatcher.commit_edits(self.pending)
        finally:
            self.saving.value = False
        self.drafts_changed.emit(len(self.pending))
        return result

    # -- actions -----------------------------------------------------------

    async def handle_row_action(self, action: str, record_id: str) -> None:
        row = self.find_row(record_id)
        if row is None:
            raise RecordNotFoundError(record_id)
        await self._dispatcher.handle_row_action(action, row)

    def refresh(self) -> RefreshDecision:
        """Request a refresh.  Outside a running event loop nothing is
        scheduled and a fetch-failure diagnostic is recorded instead."""
        return self._controller.on_signal(ManualRefresh(reason="user refresh"))

    # -- EventBus handlers --------------------------------------------------

    def _on_rows_replaced(self, event: RowSetReplacedEvent) -> None:
        current = self._controller.cache.current_rows()
        rows = current.rows if current is not None else ()
        self.rows.value = rows
        self.rows_updated.emit(rows)
        self._logger.debug("Table shows %d row(s) after %s", len(rows), event.reason)

    def _on_diagnostic(self, event: DiagnosticRecordedEvent) -> None:
        if event.severity in ("error", "critical"):
            self.error_occurred.emit(event.kind, str(event.context.get("error", event.kind)))
