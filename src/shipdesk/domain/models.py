from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from shipdesk.config import (
    ASSIGNED_AGENT_FIELD,
    DERIVED_FIELDS,
    ID_FIELD,
    NAME_FIELD,
    OBJECT_API_NAME,
    NAVIGATION_ACTION,
    OWNER_RELATIONSHIP,
    RECORD_LINK_FIELD,
    STATUS_FIELD,
)
from shipdesk.errors import ReadOnlyFieldError


class ChangeKind(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNDELETE = "UNDELETE"


@dataclass(frozen=True)
class Owner:
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class ShipmentRecord:
    """Raw record as returned by the bulk query."""

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    owner: Optional[Owner] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ShipmentRecord:
        """Build a record from the query payload shape.

        ``Id`` is mandatory; ``Owner__r`` is optional and may be ``None``.
        """
        record_id = payload.get(ID_FIELD)
        if not record_id:
            raise ValueError(f"record payload has no {ID_FIELD!r}")
        fields = {
            key: value
            for key, value in payload.items()
            if key not in (ID_FIELD, OWNER_RELATIONSHIP)
        }
        owner = None
        relation = payload.get(OWNER_RELATIONSHIP)
        if isinstance(relation, Mapping):
            owner = Owner(id=relation.get("Id"), name=relation.get("Name"))
        return cls(id=str(record_id), fields=fields, owner=owner)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {ID_FIELD: self.id, **self.fields}
        if self.owner is not None:
            payload[OWNER_RELATIONSHIP] = {"Id": self.owner.id, "Name": self.owner.name}
        return payload


@dataclass(frozen=True)
class Row:
    """Displayed row: persisted fields plus values derived at merge time."""

    id: str
    fields: Mapping[str, Any] = field(hash=False)
    assigned_agent: Optional[str] = None
    record_link: str = ""

    @property
    def status(self) -> Optional[str]:
        return self.fields.get(STATUS_FIELD)

    @property
    def name(self) -> Optional[str]:
        return self.fields.get(NAME_FIELD)

    def get(self, field_name: str, default: Any = None) -> Any:
        if field_name == ID_FIELD:
            return self.id
        if field_name == ASSIGNED_AGENT_FIELD:
            return self.assigned_agent
        if field_name == RECORD_LINK_FIELD:
            return self.record_link
        return self.fields.get(field_name, default)


@dataclass(frozen=True)
class FetchToken:
    """Opaque handle that lets the fetch service re-issue the same query."""

    query: str
    params: Tuple[Tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class RowSet:
    rows: Tuple[Row, ...]
    token: FetchToken

    def __post_init__(self) -> None:
        ids = [row.id for row in self.rows]
        if len(ids) != len(set(ids)):
            raise ValueError("row ids must be unique within a RowSet")

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(row.id for row in self.rows)

    def find(self, record_id: str) -> Optional[Row]:
        for row in self.rows:
            if row.id == record_id:
                return row
        return None


@dataclass(frozen=True)
class ChangeNotification:
    affected_ids: frozenset[str]
    kind: ChangeKind
    entity_name: str = ""
    commit_timestamp: Optional[int] = None
    replay_id: Optional[int] = None


@dataclass(frozen=True)
class NavigationTarget:
    record_id: str
    object_type: str = OBJECT_API_NAME
    action: str = NAVIGATION_ACTION


class PendingEdits:
    """Unsaved inline edits, keyed by row id."""

    def __init__(self) -> None:
        self._drafts: Dict[str, Dict[str, Any]] = {}

    def stage(self, record_id: str, field_name: str, value: Any) -> None:
        if field_name in DERIVED_FIELDS or field_name == ID_FIELD:
            raise ReadOnlyFieldError(f"{field_name!r} cannot be edited")
        self._drafts.setdefault(record_id, {})[field_name] = value

    def discard(self, record_id: str) -> None:
        self._drafts.pop(record_id, None)

    def discard_committed(self, committed: Mapping[str, Mapping[str, Any]]) -> None:
        """Drop the drafts in ``committed`` that were not re-staged since.

        A field whose draft value changed after the snapshot was taken stays
        pending, as do rows that are not part of the snapshot.
        """
        for record_id, fields in committed.items():
            drafts = self._drafts.get(record_id)
            if drafts is None:
                continue
            for field_name, value in fields.items():
                if field_name in drafts and drafts[field_name] == value:
                    del drafts[field_name]
            if not drafts:
                del self._drafts[record_id]

    def clear(self) -> None:
        self._drafts.clear()

    def deltas(self) -> Dict[str, Dict[str, Any]]:
        """Return a snapshot of ``{record_id: {field: value}}``."""
        return {record_id: dict(fields) for record_id, fields in self._drafts.items()}

    def value_for(self, record_id: str, field_name: str, default: Any = None) -> Any:
        return self._drafts.get(record_id, {}).get(field_name, default)

    def has_draft(self, record_id: str, field_name: Optional[str] = None) -> bool:
        fields = self._drafts.get(record_id)
        if not fields:
            return False
        return field_name is None or field_name in fields

    def __len__(self) -> int:
        return len(self._drafts)

    def __bool__(self) -> bool:
        return bool(self._drafts)


def frozen_fields(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(fields))
