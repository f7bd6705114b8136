"""Services the table view-model hands work off to."""

from .navigation_service import RecordNavigationService, page_reference

__all__ = ["RecordNavigationService", "page_reference"]
