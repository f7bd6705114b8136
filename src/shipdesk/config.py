"""Default configuration values for shipdesk."""

from __future__ import annotations

from typing import Final

# Change-data-capture stream for the shipment request object.  Replay ``-1``
# asks the broker for events published after the subscription only.
CHANGE_CHANNEL: Final[str] = "/data/ShipmentRequest__ChangeEvent"
REPLAY_NEW_EVENTS_ONLY: Final[int] = -1
REPLAY_ALL_RETAINED: Final[int] = -2

OBJECT_API_NAME: Final[str] = "ShipmentRequest__c"
NAVIGATION_ACTION: Final[str] = "edit"
NAVIGATION_PAGE_TYPE: Final[str] = "standard__recordPage"

# ---------------------------------------------------------------------------
# Record shape
# ---------------------------------------------------------------------------

ID_FIELD: Final[str] = "Id"
NAME_FIELD: Final[str] = "Name"
STATUS_FIELD: Final[str] = "Status__c"
DESTINATION_FIELD: Final[str] = "Destination__c"
# API name as deployed in the org, misspelling included.
ESTIMATED_DELIVERY_FIELD: Final[str] = "Estimated_Delivety__c"
OWNER_RELATIONSHIP: Final[str] = "Owner__r"

ASSIGNED_AGENT_FIELD: Final[str] = "assignedAgent"
RECORD_LINK_FIELD: Final[str] = "recordLink"
DERIVED_FIELDS: Final[frozenset[str]] = frozenset({ASSIGNED_AGENT_FIELD, RECORD_LINK_FIELD})

STATUS_ASSIGNED_TO_AGENT: Final[str] = "Assigned to Agent"
STATUS_IN_REVIEW: Final[str] = "In Review"

# ---------------------------------------------------------------------------
# Table layout
# ---------------------------------------------------------------------------

# (label, field name) in display order.
TABLE_COLUMNS: Final[tuple[tuple[str, str], ...]] = (
    ("Name", NAME_FIELD),
    ("Status", STATUS_FIELD),
    ("Destination", DESTINATION_FIELD),
    ("Estimated Delivery", ESTIMATED_DELIVERY_FIELD),
    ("Assigned Agent", ASSIGNED_AGENT_FIELD),
)

ROW_ACTION_VIEW: Final[str] = "view"
ROW_ACTION_EDIT: Final[str] = "edit"
ROW_ACTIONS: Final[tuple[tuple[str, str], ...]] = (
    ("View", ROW_ACTION_VIEW),
    ("Edit", ROW_ACTION_EDIT),
)

SETTINGS_ENV_VAR: Final[str] = "SHIPDESK_SETTINGS"
JSON_LOGS_ENV_VAR: Final[str] = "SHIPDESK_JSON_LOGS"
