import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from shipdesk.application.interfaces import BulkFetchService, FetchResult, PersistenceService  # noqa: E402
from shipdesk.config import STATUS_FIELD  # noqa: E402
from shipdesk.domain.models import FetchToken, Owner, ShipmentRecord  # noqa: E402
from shipdesk.errors import PersistenceFailure, SubscriptionFailure  # noqa: E402
from shipdesk.infrastructure.memory_transport import InMemoryStreamingTransport  # noqa: E402


def make_record(record_id: str, status: str = "New", *, name: Optional[str] = None,
                agent: Optional[str] = "Ada Agent", **fields: Any) -> ShipmentRecord:
    owner = Owner(id=f"005{record_id[-3:]}", name=agent) if agent is not None else None
    values = {"Name": name or f"SR-{record_id[-3:]}", STATUS_FIELD: status}
    values.update(fields)
    return ShipmentRecord(id=record_id, fields=values, owner=owner)


def change_event(kind: str, *record_ids: str, replay_id: int = 1) -> Dict[str, Any]:
    return {
        "channel": "/data/ShipmentRequest__ChangeEvent",
        "data": {
            "event": {"replayId": replay_id},
            "payload": {
                "ChangeEventHeader": {
                    "entityName": "ShipmentRequest__c",
                    "changeType": kind,
                    "recordIds": list(record_ids),
                    "commitTimestamp": 1700000000000,
                },
            },
        },
    }


class RecordingDiagnostics:
    def __init__(self) -> None:
        self.records: List[tuple] = []

    def record(self, kind, context) -> None:
        self.records.append((kind, dict(context)))

    def kinds(self) -> list:
        return [kind for kind, _ in self.records]

    def of_kind(self, kind) -> List[dict]:
        return [context for recorded, context in self.records if recorded == kind]


class FakeFetchService(BulkFetchService):
    """Returns ``records`` as they are when the call resolves.

    Set ``gate`` to an ``asyncio.Event`` to hold calls in flight, or
    ``fail_with`` to make them raise.
    """

    def __init__(self, records: Iterable[ShipmentRecord] = ()) -> None:
        self.records = list(records)
        self.fetch_calls = 0
        self.refetch_calls = 0
        self.tokens: List[FetchToken] = []
        self.gate: Optional[asyncio.Event] = None
        self.fail_with: Optional[Exception] = None

    async def fetch(self) -> FetchResult:
        self.fetch_calls += 1
        return await self._resolve(FetchToken(query="getShipmentRequests"))

    async def refetch(self, token: FetchToken) -> FetchResult:
        self.refetch_calls += 1
        self.tokens.append(token)
        return await self._resolve(token)

    @property
    def total_calls(self) -> int:
        return self.fetch_calls + self.refetch_calls

    async def _resolve(self, token: FetchToken) -> FetchResult:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return FetchResult(records=list(self.records), token=token)


class FakePersistence(PersistenceService):
    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.calls: List[tuple] = []
        self.failing = set(failing)

    async def persist(self, record_id: str, field_deltas: Dict[str, Any]) -> None:
        self.calls.append((record_id, dict(field_deltas)))
        await asyncio.sleep(0)
        if record_id in self.failing:
            raise PersistenceFailure(record_id, "FIELD_CUSTOM_VALIDATION_EXCEPTION")


class ControllableTransport(InMemoryStreamingTransport):
    def __init__(self) -> None:
        super().__init__()
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0
        self.subscribe_gate: Optional[asyncio.Event] = None
        self.fail_subscribe = False
        self.fail_unsubscribe = False

    async def subscribe(self, channel, replay_from, on_message):
        self.subscribe_calls += 1
        if self.subscribe_gate is not None:
            await self.subscribe_gate.wait()
        if self.fail_subscribe:
            raise SubscriptionFailure("handshake denied")
        return await super().subscribe(channel, replay_from, on_message)

    async def unsubscribe(self, handle):
        self.unsubscribe_calls += 1
        if self.fail_unsubscribe:
            raise SubscriptionFailure("connection lost")
        return await super().unsubscribe(handle)


@pytest.fixture
def diagnostics() -> RecordingDiagnostics:
    return RecordingDiagnostics()


@pytest.fixture
def records() -> List[ShipmentRecord]:
    return [
        make_record("a01000000000000001", "Assigned to Agent", Destination__c="Lyon"),
        make_record("a01000000000000002", "In Review", Destination__c="Oslo"),
        make_record("a01000000000000003", "New", agent=None),
    ]


@pytest.fixture
def transport() -> ControllableTransport:
    return ControllableTransport()
