"""Decoding of raw change-data-capture events.

The streaming transport hands over events shaped like::

    {
        "channel": "/data/ShipmentRequest__ChangeEvent",
        "data": {
            "event": {"replayId": 42},
            "payload": {
                "ChangeEventHeader": {
                    "entityName": "ShipmentRequest__c",
                    "changeType": "UPDATE",
                    "recordIds": ["a01..."],
                    "commitTimestamp": 1700000000000,
                },
                "Status__c": "In Review",
            },
        },
    }

Only the header matters for reconciliation; changed field values are ignored
because every refresh re-reads the full row set.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from shipdesk.domain.models import ChangeKind, ChangeNotification
from shipdesk.errors import DecodeFailure
from shipdesk.errors.handler import DiagnosticKind, DiagnosticsSink

LOGGER = logging.getLogger(__name__)


def _require_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DecodeFailure(f"{where} is missing or not an object")
    return value


def decode_change_event(payload: Any) -> ChangeNotification:
    """Interpret *payload* as a :class:`ChangeNotification`.

    Raises:
        DecodeFailure: when the header or its record-id list is malformed.
    """
    envelope = _require_mapping(payload, "event")
    data = _require_mapping(envelope.get("data"), "data")
    body = _require_mapping(data.get("payload"), "data.payload")
    header = _require_mapping(body.get("ChangeEventHeader"), "ChangeEventHeader")

    record_ids = header.get("recordIds")
    if not isinstance(record_ids, (list, tuple)) or not record_ids:
        raise DecodeFailure("ChangeEventHeader.recordIds is missing or empty")
    if not all(isinstance(record_id, str) and record_id for record_id in record_ids):
        raise DecodeFailure("ChangeEventHeader.recordIds contains a non-string id")

    raw_kind = header.get("changeType")
    try:
        kind = ChangeKind(str(raw_kind).upper())
    except ValueError:
        raise DecodeFailure(f"unsupported changeType {raw_kind!r}") from None

    event = data.get("event")
    replay_id = event.get("replayId") if isinstance(event, Mapping) else None

    return ChangeNotification(
        affected_ids=frozenset(record_ids),
        kind=kind,
        entity_name=str(header.get("entityName") or ""),
        commit_timestamp=header.get("commitTimestamp"),
        replay_id=replay_id,
    )


class ChangeEventDecoder:
    """Decoder that reports malformed events instead of raising."""

    def __init__(self, diagnostics: DiagnosticsSink) -> None:
        self._diagnostics = diagnostics

    def decode(self, payload: Any) -> Optional[ChangeNotification]:
        try:
            notification = decode_change_event(payload)
        except DecodeFailure as exc:
            self._diagnostics.record(
                DiagnosticKind.DECODE_FAILURE,
                {"error": str(exc), "payload": _preview(payload)},
            )
            return None
        LOGGER.debug(
            "Decoded %s for %d record(s)",
            notification.kind.value,
            len(notification.affected_ids),
        )
        return notification


def _preview(payload: Any, limit: int = 200) -> str:
    text = repr(payload)
    if len(text) > limit:
        return text[:limit] + "..."
    return text
