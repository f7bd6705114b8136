import pytest

from conftest import change_event
from shipdesk.application.services.change_decoder import ChangeEventDecoder, decode_change_event
from shipdesk.domain.models import ChangeKind
from shipdesk.errors import DecodeFailure
from shipdesk.errors.handler import DiagnosticKind


def test_decodes_header_fields():
    notification = decode_change_event(change_event("UPDATE", "a01A", "a01B", replay_id=7))

    assert notification.kind is ChangeKind.UPDATE
    assert notification.affected_ids == frozenset({"a01A", "a01B"})
    assert notification.entity_name == "ShipmentRequest__c"
    assert notification.commit_timestamp == 1700000000000
    assert notification.replay_id == 7


def test_change_type_is_case_insensitive():
    notification = decode_change_event(change_event("undelete", "a01A"))
    assert notification.kind is ChangeKind.UNDELETE


def test_changed_field_values_are_ignored():
    payload = change_event("UPDATE", "a01A")
    payload["data"]["payload"]["Status__c"] = "Delivered"

    notification = decode_change_event(payload)

    assert notification.affected_ids == frozenset({"a01A"})


def test_missing_replay_id_is_tolerated():
    payload = change_event("CREATE", "a01A")
    del payload["data"]["event"]

    assert decode_change_event(payload).replay_id is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p.pop("data"),
        lambda p: p["data"].pop("payload"),
        lambda p: p["data"]["payload"].pop("ChangeEventHeader"),
        lambda p: p["data"]["payload"]["ChangeEventHeader"].update(recordIds=[]),
        lambda p: p["data"]["payload"]["ChangeEventHeader"].update(recordIds="a01A"),
        lambda p: p["data"]["payload"]["ChangeEventHeader"].update(recordIds=["a01A", None]),
        lambda p: p["data"]["payload"]["ChangeEventHeader"].update(changeType="GAP_UPDATE"),
        lambda p: p["data"]["payload"]["ChangeEventHeader"].pop("changeType"),
    ],
)
def test_malformed_events_raise_decode_failure(mutate):
    payload = change_event("UPDATE", "a01A")
    mutate(payload)

    with pytest.raises(DecodeFailure):
        decode_change_event(payload)


def test_non_mapping_payload_raises():
    with pytest.raises(DecodeFailure):
        decode_change_event("not an event")


def test_decoder_reports_instead_of_raising(diagnostics):
    decoder = ChangeEventDecoder(diagnostics)

    assert decoder.decode({"data": {}}) is None
    assert diagnostics.kinds() == [DiagnosticKind.DECODE_FAILURE]
    context = diagnostics.of_kind(DiagnosticKind.DECODE_FAILURE)[0]
    assert "data.payload" in context["error"]
    assert context["payload"] == repr({"data": {}})


def test_decoder_truncates_payload_preview(diagnostics):
    decoder = ChangeEventDecoder(diagnostics)

    decoder.decode({"junk": "x" * 1000})

    preview = diagnostics.of_kind(DiagnosticKind.DECODE_FAILURE)[0]["payload"]
    assert preview.endswith("...")
    assert len(preview) == 203


def test_decoder_returns_notification_without_reporting(diagnostics):
    decoder = ChangeEventDecoder(diagnostics)

    notification = decoder.decode(change_event("DELETE", "a01A"))

    assert notification.kind is ChangeKind.DELETE
    assert diagnostics.records == []
