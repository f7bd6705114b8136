"""Reconciliation of the cached row set with the server.

Every input to the table (first load, remote change events, settled local
edits, manual refresh requests) goes through :meth:`SyncController.on_signal`,
which decides whether the cached row set must be re-fetched.  The controller
is the only component that issues refreshes, so the row-action path and the
edit-grid path reconcile exactly like remote notifications do.

Refreshes are coalesced: while a fetch is in flight any number of further
requests collapse into a single follow-up fetch, and requests made before the
scheduled fetch is issued are served by it.  After the last signal of a burst
the cache therefore reflects a fetch issued no earlier than that signal.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from shipdesk.application.dtos import (
    EditCommitResult,
    InitialLoadResult,
    ManualRefresh,
    RefreshDecision,
)
from shipdesk.application.interfaces import BulkFetchService, FetchResult
from shipdesk.application.services.row_cache import RowCache
from shipdesk.application.services.subscription_manager import SubscriptionManager
from shipdesk.domain.models import ChangeKind, ChangeNotification, RowSet
from shipdesk.errors.handler import DiagnosticKind, DiagnosticsSink
from shipdesk.events.bus import EventBus
from shipdesk.events.sync_events import RefreshRequestedEvent, RowSetReplacedEvent

LOGGER = logging.getLogger(__name__)

SyncSignal = Union[InitialLoadResult, ChangeNotification, EditCommitResult, ManualRefresh]


class SyncController:
    def __init__(
        self,
        fetch_service: BulkFetchService,
        cache: RowCache,
        subscription: SubscriptionManager,
        diagnostics: DiagnosticsSink,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._fetch = fetch_service
        self._cache = cache
        self._subscription = subscription
        self._diagnostics = diagnostics
        self._events = event_bus

        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_requested = False
        self._fetches_issued = 0
        self._stopped = False

    # -- properties --------------------------------------------------------

    @property
    def cache(self) -> RowCache:
        return self._cache

    @property
    def subscription(self) -> SubscriptionManager:
        return self._subscription

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def fetches_issued(self) -> int:
        """Number of refresh fetches issued so far (initial load excluded)."""
        return self._fetches_issued

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> RefreshDecision:
        """Attach: listen for stream errors, subscribe, then load the rows.

        Subscribing first limits the window in which a change can go unseen
        to the initial fetch itself.  Events that arrive before the load
        completes are ignored because the cache is not populated yet.
        """
        self._stopped = False
        self._subscription.register_error_listener()
        await self._subscription.subscribe(self._on_notification)
        if self._stopped:
            LOGGER.info("Detached while subscribing; initial load skipped")
            return RefreshDecision(False, "detached before initial load")
        return await self.load()

    async def stop(self) -> None:
        """Detach: release the subscription.  In-flight fetches are not cancelled."""
        self._stopped = True
        await self._subscription.unsubscribe()

    async def load(self) -> RefreshDecision:
        try:
            result = await self._fetch.fetch()
        except Exception as exc:
            return self.on_signal(InitialLoadResult(error=exc))
        return self.on_signal(InitialLoadResult(result=result))

    async def wait_idle(self) -> None:
        """Wait until no refresh is running or pending."""
        while self._refresh_task is not None and not self._refresh_task.done():
            await self._refresh_task

    # -- decisions ---------------------------------------------------------

    def on_signal(self, signal: SyncSignal) -> RefreshDecision:
        """Decide, and if needed schedule, the refresh for one signal.

        Never suspends: the cache is read and replaced within this call.
        """
        if isinstance(signal, InitialLoadResult):
            return self._on_initial_load(signal)
        if isinstance(signal, ChangeNotification):
            decision = self.decide_for_notification(signal)
        elif isinstance(signal, EditCommitResult):
            decision = self.decide_for_commit(signal)
        elif isinstance(signal, ManualRefresh):
            decision = RefreshDecision(True, signal.reason)
        else:
            raise TypeError(f"unsupported signal {type(signal).__name__}")

        if decision.refresh:
            coalesced = self.request_refresh(decision.reason)
            if coalesced is None:
                return RefreshDecision(False, "no running event loop")
            decision = RefreshDecision(True, decision.reason, coalesced=coalesced)
        else:
            LOGGER.debug("No refresh: %s", decision.reason)
        return decision

    def decide_for_notification(self, notification: ChangeNotification) -> RefreshDecision:
        if not self._cache.is_populated:
            return RefreshDecision(False, "row cache not populated")
        if notification.affected_ids & self._cache.ids:
            return RefreshDecision(True, f"{notification.kind.value} touches a displayed row")
        if notification.kind is ChangeKind.CREATE:
            # View membership cannot be evaluated locally for new records.
            return RefreshDecision(True, "record created")
        return RefreshDecision(False, f"{notification.kind.value} outside the displayed rows")

    @staticmethod
    def decide_for_commit(commit: EditCommitResult) -> RefreshDecision:
        if not commit.outcomes:
            return RefreshDecision(False, "nothing to commit")
        return RefreshDecision(
            True,
            f"{len(commit.succeeded)} edit(s) persisted, {len(commit.failed)} failed",
        )

    # -- refresh execution -------------------------------------------------

    def request_refresh(self, reason: str = "") -> Optional[bool]:
        """Schedule a refresh; return ``True`` when an unissued one was already pending.

        Returns ``None`` when no refresh could be scheduled because the
        caller is not running inside an event loop.  The dropped request is
        reported as a diagnostic.
        """
        if self._refresh_task is None or self._refresh_task.done():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._diagnostics.record(
                    DiagnosticKind.FETCH_FAILURE,
                    {"error": "no running event loop", "phase": "schedule refresh", "reason": reason},
                )
                return None
            self._refresh_task = loop.create_task(self._run_refreshes())
        coalesced = self._refresh_requested
        self._refresh_requested = True
        if self._events is not None:
            self._events.publish(RefreshRequestedEvent(reason=reason, coalesced=coalesced))
        return coalesced

    async def _run_refreshes(self) -> None:
        while self._refresh_requested:
            self._refresh_requested = False
            await self._refresh_once()

    async def _refresh_once(self) -> None:
        token = self._cache.token
        self._fetches_issued += 1
        try:
            if token is None:
                result = await self._fetch.fetch()
            else:
                result = await self._fetch.refetch(token)
        except Exception as exc:
            self._diagnostics.record(
                DiagnosticKind.FETCH_FAILURE,
                {"error": str(exc), "phase": "refresh"},
            )
            return
        self._apply(result, reason="refresh")

    def _on_initial_load(self, signal: InitialLoadResult) -> RefreshDecision:
        if not signal.succeeded:
            self._diagnostics.record(
                DiagnosticKind.FETCH_FAILURE,
                {"error": str(signal.error), "phase": "initial load"},
            )
            return RefreshDecision(False, "initial load failed")
        self._apply(signal.result, reason="initial load")
        return RefreshDecision(False, "initial load applied")

    def _apply(self, result: FetchResult, reason: str) -> RowSet:
        row_set = self._cache.replace(result.records, result.token)
        if self._events is not None:
            self._events.publish(
                RowSetReplacedEvent(row_ids=tuple(row.id for row in row_set), reason=reason)
            )
        return row_set

    async def _on_notification(self, notification: ChangeNotification) -> None:
        self.on_signal(notification)
