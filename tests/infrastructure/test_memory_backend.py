import asyncio
import json

import pytest

from conftest import make_record
from shipdesk.domain.models import FetchToken, Owner
from shipdesk.errors import (
    FetchFailure,
    PersistenceFailure,
    RecordNotFoundError,
    SeedFormatError,
    SubscriptionFailure,
)
from shipdesk.infrastructure import InMemoryShipmentStore, InMemoryStreamingTransport, load_seed

CHANNEL = "/data/ShipmentRequest__ChangeEvent"
ALLOWED = ["New", "Assigned to Agent", "In Review"]


@pytest.fixture
def backend(records):
    transport = InMemoryStreamingTransport()
    store = InMemoryShipmentStore(records, transport=transport, allowed_statuses=ALLOWED)
    envelopes = []

    async def subscribe():
        await transport.subscribe(CHANNEL, -1, envelopes.append)

    asyncio.run(subscribe())
    return store, transport, envelopes


def _headers(envelopes):
    return [e["data"]["payload"]["ChangeEventHeader"] for e in envelopes]


def test_fetch_returns_copies(backend, records):
    store, _, _ = backend

    result = asyncio.run(store.fetch())
    result.records[0].fields["Status__c"] = "Delivered"

    assert result.token == FetchToken(query="getShipmentRequests")
    assert [r.id for r in result.records] == [r.id for r in records]
    assert store.get(records[0].id).fields["Status__c"] == "Assigned to Agent"


def test_refetch_requires_known_query(backend):
    store, _, _ = backend

    with pytest.raises(FetchFailure):
        asyncio.run(store.refetch(FetchToken(query="somethingElse")))


def test_persist_updates_and_emits_change(backend, records):
    store, _, envelopes = backend

    asyncio.run(store.persist(records[0].id, {"Status__c": "In Review"}))

    assert store.get(records[0].id).fields["Status__c"] == "In Review"
    [header] = _headers(envelopes)
    assert header["changeType"] == "UPDATE"
    assert header["recordIds"] == [records[0].id]
    assert header["changedFields"] == ["Status__c"]
    assert envelopes[0]["data"]["event"]["replayId"] == 1


def test_persist_rejects_unknown_record(backend):
    store, _, envelopes = backend

    with pytest.raises(PersistenceFailure) as excinfo:
        asyncio.run(store.persist("a01000000000000404", {"Destination__c": "Nowhere"}))

    assert excinfo.value.record_id == "a01000000000000404"
    assert envelopes == []


def test_persist_rejects_restricted_status(backend, records):
    store, _, _ = backend

    with pytest.raises(PersistenceFailure, match="restricted picklist"):
        asyncio.run(store.persist(records[0].id, {"Status__c": "Lost"}))


def test_create_assigns_ids_and_emits(backend):
    store, _, envelopes = backend

    created = asyncio.run(store.create({"Name": "SR-900", "Status__c": "New"}, Owner("005X", "Lin")))

    assert created.id.startswith("a01")
    assert len(created.id) == 18
    assert created.owner.name == "Lin"
    [header] = _headers(envelopes)
    assert header["changeType"] == "CREATE"
    assert header["recordIds"] == [created.id]


def test_delete_and_undelete(backend, records):
    store, _, envelopes = backend
    record_id = records[1].id

    asyncio.run(store.delete(record_id))
    assert record_id not in {r.id for r in store.snapshot()}
    with pytest.raises(RecordNotFoundError):
        store.get(record_id)

    asyncio.run(store.undelete(record_id))
    assert store.get(record_id).fields["Status__c"] == "In Review"
    assert [h["changeType"] for h in _headers(envelopes)] == ["DELETE", "UNDELETE"]


def test_reassign_changes_owner(backend, records):
    store, _, envelopes = backend

    asyncio.run(store.reassign(records[2].id, Owner("005Q", "Quinn")))

    assert store.get(records[2].id).owner == Owner("005Q", "Quinn")
    assert _headers(envelopes)[0]["changedFields"] == ["OwnerId"]


def test_store_without_transport_is_silent(records):
    store = InMemoryShipmentStore(records)

    asyncio.run(store.update(records[0].id, {"Destination__c": "Riga"}))

    assert store.get(records[0].id).fields["Destination__c"] == "Riga"


def test_transport_rejects_invalid_channel():
    transport = InMemoryStreamingTransport()

    with pytest.raises(SubscriptionFailure):
        asyncio.run(transport.subscribe("data/NoSlash", -1, lambda e: None))


def test_transport_rejects_unknown_handle():
    transport = InMemoryStreamingTransport()

    with pytest.raises(SubscriptionFailure):
        asyncio.run(transport.unsubscribe(object()))


def test_transport_routes_by_channel():
    transport = InMemoryStreamingTransport()
    received = []

    async def scenario():
        await transport.subscribe(CHANNEL, -1, received.append)
        await transport.publish("/data/OtherChangeEvent", {"x": 1})
        await transport.publish(CHANNEL, {"x": 2})

    asyncio.run(scenario())

    assert [e["data"]["payload"] for e in received] == [{"x": 2}]
    assert received[0]["data"]["event"]["replayId"] == 2


def test_failing_subscriber_reaches_error_listeners():
    transport = InMemoryStreamingTransport()
    errors = []
    transport.on_error(errors.append)

    def explode(envelope):
        raise RuntimeError("handler crashed")

    async def scenario():
        await transport.subscribe(CHANNEL, -1, explode)
        await transport.publish(CHANNEL, {})

    asyncio.run(scenario())

    [error] = errors
    assert error["error"] == "handler crashed"


def test_load_seed_accepts_list_and_object(tmp_path):
    entries = [make_record("a01000000000000001").to_payload()]
    as_list = tmp_path / "list.json"
    as_list.write_text(json.dumps(entries), encoding="utf-8")
    as_object = tmp_path / "object.json"
    as_object.write_text(json.dumps({"records": entries}), encoding="utf-8")

    assert [r.id for r in load_seed(as_list)] == ["a01000000000000001"]
    [record] = load_seed(as_object)
    assert record.owner.name == "Ada Agent"
    assert record.fields["Status__c"] == "New"


@pytest.mark.parametrize(
    "content",
    ["not json", json.dumps({"rows": []}), json.dumps([1, 2]), json.dumps([{"Name": "no id"}])],
)
def test_load_seed_rejects_bad_content(tmp_path, content):
    seed = tmp_path / "seed.json"
    seed.write_text(content, encoding="utf-8")

    with pytest.raises(SeedFormatError):
        load_seed(seed)
