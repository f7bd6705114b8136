"""Last-known row set of the shipment request table."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from shipdesk.domain.models import (
    FetchToken,
    Row,
    RowSet,
    ShipmentRecord,
    frozen_fields,
)

LOGGER = logging.getLogger(__name__)


def record_link(record_id: str) -> str:
    return f"/{record_id}"


def enrich_record(record: ShipmentRecord) -> Row:
    """Merge a raw record with the values derived from its relationships.

    A missing owner yields ``assigned_agent=None``.
    """
    owner_name = record.owner.name if record.owner is not None else None
    return Row(
        id=record.id,
        fields=frozen_fields(record.fields),
        assigned_agent=owner_name,
        record_link=record_link(record.id),
    )


class RowCache:
    """Holds the current :class:`RowSet` and swaps it as a unit.

    ``replace`` builds the complete new set before the single assignment that
    publishes it, so readers never see a partially merged result.
    """

    def __init__(self) -> None:
        self._current: Optional[RowSet] = None

    # -- properties --------------------------------------------------------

    @property
    def token(self) -> Optional[FetchToken]:
        current = self._current
        return current.token if current is not None else None

    @property
    def ids(self) -> frozenset[str]:
        current = self._current
        return current.ids if current is not None else frozenset()

    @property
    def is_populated(self) -> bool:
        current = self._current
        return current is not None and len(current) > 0

    # -- public API --------------------------------------------------------

    def current_rows(self) -> Optional[RowSet]:
        return self._current

    def replace(self, records: Iterable[ShipmentRecord], token: FetchToken) -> RowSet:
        rows: list[Row] = []
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                LOGGER.warning("Dropping duplicate record %s from fetch result", record.id)
                continue
            seen.add(record.id)
            rows.append(enrich_record(record))
        new_set = RowSet(rows=tuple(rows), token=token)
        self._current = new_set
        LOGGER.debug("Row cache replaced (%d rows)", len(new_set))
        return new_set

    def clear(self) -> None:
        self._current = None
