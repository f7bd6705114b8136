"""In-memory shipment request backend.

Implements the bulk query and the record update service over a plain dict
and publishes change-data-capture events for every mutation, mirroring what
the platform does for the real object.
"""

from __future__ import annotations

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from shipdesk.application.interfaces import BulkFetchService, FetchResult, PersistenceService
from shipdesk.config import CHANGE_CHANNEL, OBJECT_API_NAME, STATUS_FIELD
from shipdesk.domain.models import ChangeKind, FetchToken, Owner, ShipmentRecord
from shipdesk.errors import FetchFailure, PersistenceFailure, RecordNotFoundError, SeedFormatError
from shipdesk.infrastructure.memory_transport import InMemoryStreamingTransport

LOGGER = logging.getLogger(__name__)

LIST_QUERY = "getShipmentRequests"


class InMemoryShipmentStore(BulkFetchService, PersistenceService):
    def __init__(
        self,
        records: Iterable[ShipmentRecord] = (),
        *,
        transport: Optional[InMemoryStreamingTransport] = None,
        channel: str = CHANGE_CHANNEL,
        allowed_statuses: Optional[Iterable[str]] = None,
    ) -> None:
        self._records: Dict[str, ShipmentRecord] = {}
        self._recycle_bin: Dict[str, ShipmentRecord] = {}
        self._transport = transport
        self._channel = channel
        self._allowed_statuses = frozenset(allowed_statuses) if allowed_statuses else None
        self._counter = 0
        for record in records:
            self._records[record.id] = copy.deepcopy(record)

    # ------------------------------------------------------------------
    # Query side
    # ------------------------------------------------------------------
    async def fetch(self) -> FetchResult:
        return FetchResult(records=self.snapshot(), token=FetchToken(query=LIST_QUERY))

    async def refetch(self, token: FetchToken) -> FetchResult:
        if token.query != LIST_QUERY:
            raise FetchFailure(f"unknown query {token.query!r}")
        return FetchResult(records=self.snapshot(), token=token)

    def snapshot(self) -> List[ShipmentRecord]:
        return [copy.deepcopy(record) for record in self._records.values()]

    def get(self, record_id: str) -> ShipmentRecord:
        try:
            return copy.deepcopy(self._records[record_id])
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------
    async def persist(self, record_id: str, field_deltas: Dict[str, Any]) -> None:
        if record_id not in self._records:
            raise PersistenceFailure(record_id, "record does not exist or was deleted")
        status = field_deltas.get(STATUS_FIELD)
        if (
            status is not None
            and self._allowed_statuses is not None
            and status not in self._allowed_statuses
        ):
            raise PersistenceFailure(record_id, f"bad value for restricted picklist field: {status}")
        await self.update(record_id, field_deltas)

    async def create(self, fields: Dict[str, Any], owner: Optional[Owner] = None) -> ShipmentRecord:
        self._counter += 1
        record = ShipmentRecord(id=f"a01{self._counter:015d}", fields=dict(fields), owner=owner)
        while record.id in self._records or record.id in self._recycle_bin:
            self._counter += 1
            record.id = f"a01{self._counter:015d}"
        self._records[record.id] = record
        await self._emit(ChangeKind.CREATE, [record.id], record.fields)
        return copy.deepcopy(record)

    async def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        try:
            record = self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None
        record.fields.update(fields)
        await self._emit(ChangeKind.UPDATE, [record_id], fields)

    async def reassign(self, record_id: str, owner: Optional[Owner]) -> None:
        try:
            record = self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None
        record.owner = owner
        await self._emit(ChangeKind.UPDATE, [record_id], {"OwnerId": owner.id if owner else None})

    async def delete(self, record_id: str) -> None:
        try:
            record = self._records.pop(record_id)
        except KeyError:
            raise RecordNotFoundError(record_id) from None
        self._recycle_bin[record_id] = record
        await self._emit(ChangeKind.DELETE, [record_id], {})

    async def undelete(self, record_id: str) -> None:
        try:
            record = self._recycle_bin.pop(record_id)
        except KeyError:
            raise RecordNotFoundError(record_id) from None
        self._records[record_id] = record
        await self._emit(ChangeKind.UNDELETE, [record_id], record.fields)

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    async def _emit(self, kind: ChangeKind, record_ids: List[str], fields: Dict[str, Any]) -> None:
        if self._transport is None:
            return
        payload = {
            "ChangeEventHeader": {
                "entityName": OBJECT_API_NAME,
                "changeType": kind.value,
                "recordIds": list(record_ids),
                "commitTimestamp": int(time.time() * 1000),
                "changedFields": sorted(fields),
            },
            **fields,
        }
        await self._transport.publish(self._channel, payload)


def load_seed(path: Path) -> List[ShipmentRecord]:
    """Read shipment records from a JSON seed file.

    Accepts either a list of record payloads or ``{"records": [...]}``.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SeedFormatError(f"cannot read seed {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("records")
    if not isinstance(payload, list):
        raise SeedFormatError(f"seed {path} must contain a list of records")
    records = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise SeedFormatError(f"seed entry {index} is not an object")
        try:
            records.append(ShipmentRecord.from_payload(entry))
        except ValueError as exc:
            raise SeedFormatError(f"seed entry {index}: {exc}") from exc
    LOGGER.debug("Loaded %d seed record(s) from %s", len(records), path)
    return records
