"""RecordNavigationService: record page navigation for the table.

Pure Python, no Qt dependency.  The host connects ``page_changed`` to
whatever actually opens the record page.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shipdesk.application.interfaces import NavigationService
from shipdesk.config import NAVIGATION_PAGE_TYPE
from shipdesk.domain.models import NavigationTarget
from shipdesk.gui.viewmodels.signal import Signal


def page_reference(target: NavigationTarget) -> Dict[str, Any]:
    """Page reference understood by the record-page router."""
    return {
        "type": NAVIGATION_PAGE_TYPE,
        "attributes": {
            "recordId": target.record_id,
            "objectApiName": target.object_type,
            "actionName": target.action,
        },
    }


class RecordNavigationService(NavigationService):
    def __init__(self) -> None:
        self.page_changed = Signal()  # emits (page_reference: dict)
        self._history: list[NavigationTarget] = []

    def navigate(self, target: NavigationTarget) -> None:
        self._history.append(target)
        self.page_changed.emit(page_reference(target))

    def go_back(self) -> bool:
        """Go back one step. Returns ``True`` if navigation occurred."""
        if len(self._history) > 1:
            self._history.pop()
            self.page_changed.emit(page_reference(self._history[-1]))
            return True
        return False

    @property
    def current_target(self) -> Optional[NavigationTarget]:
        if self._history:
            return self._history[-1]
        return None

    @property
    def history(self) -> list[NavigationTarget]:
        return list(self._history)

    @property
    def can_go_back(self) -> bool:
        return len(self._history) > 1

    def clear_history(self) -> None:
        self._history.clear()
