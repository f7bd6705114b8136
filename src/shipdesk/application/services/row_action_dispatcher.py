"""Row-level actions and inline-edit commits for the shipment table."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from shipdesk.application.dtos import (
    EditCommitResult,
    EditOutcome,
    ManualRefresh,
    RefreshDecision,
)
from shipdesk.application.interfaces import NavigationService, PersistenceService
from shipdesk.application.services.sync_controller import SyncController
from shipdesk.config import (
    DERIVED_FIELDS,
    ID_FIELD,
    OBJECT_API_NAME,
    ROW_ACTION_VIEW,
    STATUS_ASSIGNED_TO_AGENT,
    STATUS_FIELD,
    STATUS_IN_REVIEW,
)
from shipdesk.domain.models import NavigationTarget, PendingEdits, Row
from shipdesk.errors.handler import DiagnosticKind, DiagnosticsSink

LOGGER = logging.getLogger(__name__)


def build_field_delta(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Strip the identity and display-only values from an edit draft."""
    return {
        name: value
        for name, value in fields.items()
        if name != ID_FIELD and name not in DERIVED_FIELDS
    }


class RowActionDispatcher:
    """Maps row actions to status transitions, refreshes and navigation.

    Persistence results are never applied locally; the controller re-fetches
    so the table only ever shows server state.
    """

    def __init__(
        self,
        persistence: PersistenceService,
        controller: SyncController,
        navigation: NavigationService,
        diagnostics: DiagnosticsSink,
        *,
        assigned_status: str = STATUS_ASSIGNED_TO_AGENT,
        review_status: str = STATUS_IN_REVIEW,
        object_type: str = OBJECT_API_NAME,
    ) -> None:
        self._persistence = persistence
        self._controller = controller
        self._navigation = navigation
        self._diagnostics = diagnostics
        self._assigned_status = assigned_status
        self._review_status = review_status
        self._object_type = object_type

    async def handle_row_action(self, action: str, row: Row) -> None:
        """Run *action* on *row*, then open the record's edit page.

        Navigation happens for every action name.
        """
        if action == ROW_ACTION_VIEW and row.status == self._assigned_status:
            await self._mark_in_review(row)
        self._navigation.navigate(NavigationTarget(record_id=row.id, object_type=self._object_type))

    async def commit_edits(self, pending: PendingEdits) -> EditCommitResult:
        """Persist every staged row concurrently and reconcile once.

        A failing row is reported and does not stop the others.  Once all calls
        have settled the committed drafts are dropped, whatever their outcome;
        edits staged while the calls were in flight stay pending.
        """
        deltas = pending.deltas()
        record_ids = list(deltas)
        results = await asyncio.gather(
            *(self._persistence.persist(record_id, build_field_delta(deltas[record_id]))
              for record_id in record_ids),
            return_exceptions=True,
        )
        pending.discard_committed(deltas)

        outcomes = []
        for record_id, result in zip(record_ids, results):
            if isinstance(result, BaseException):
                self._report_failure(record_id, result, operation="inline edit")
                outcomes.append(EditOutcome(record_id, error=result))
            else:
                outcomes.append(EditOutcome(record_id))

        commit = EditCommitResult(outcomes=tuple(outcomes))
        LOGGER.info(
            "Committed %d edit(s): %d persisted, %d failed",
            len(outcomes),
            len(commit.succeeded),
            len(commit.failed),
        )
        self._controller.on_signal(commit)
        return commit

    # -- internal ----------------------------------------------------------

    async def _mark_in_review(self, row: Row) -> RefreshDecision:
        try:
            await self._persistence.persist(row.id, {STATUS_FIELD: self._review_status})
        except Exception as exc:
            self._report_failure(row.id, exc, operation="status transition")
            # The server may still hold a different status than the row shows.
            return self._controller.on_signal(ManualRefresh(reason="status transition failed"))
        return self._controller.on_signal(EditCommitResult(outcomes=(EditOutcome(row.id),)))

    def _report_failure(self, record_id: str, error: BaseException, operation: str) -> None:
        self._diagnostics.record(
            DiagnosticKind.PERSISTENCE_FAILURE,
            {"error": str(error), "record_id": record_id, "operation": operation},
        )
