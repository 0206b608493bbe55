from __future__ import annotations

import json
from datetime import datetime

import pytest

from connect_worker.notifications.decoder import DecodeError, decode, decode_message, parse_timestamp
from connect_worker.notifications.envelope import EnvelopeState
from tests.conftest import connect_xml


def test_decode_completed_envelope_with_namespace():
    status = decode(connect_xml())
    assert status.envelope_id == "4b728be4-4a1d-4f4b-8f5d-1a2b3c4d5e6f"
    assert status.status is EnvelopeState.COMPLETED
    assert status.raw_status == "Completed"
    assert status.created_at == datetime(2020, 5, 12, 3, 9, 22, 873000)
    assert status.completed_at == datetime(2020, 5, 12, 3, 10, 41, 287000)
    assert status.subject == "Please sign the sales order"
    assert status.sender_name == "Pat Sender"
    assert status.sender_email == "pat@example.com"
    assert status.custom_fields == (("Sales order", "SO-123/A"), ("Light color", "blue"))


def test_decode_without_namespace_and_bytes_payload():
    status = decode(connect_xml(namespace=False).encode("utf-8"))
    assert status.status is EnvelopeState.COMPLETED


def test_completed_timestamp_only_required_for_completed_status():
    status = decode(connect_xml(status="Sent", completed=None))
    assert status.status is EnvelopeState.SENT
    assert status.completed_at is None

    with pytest.raises(DecodeError):
        decode(connect_xml(status="Completed", completed=None))


def test_completed_with_unparseable_timestamp_is_rejected():
    with pytest.raises(DecodeError, match="unparseable Completed"):
        decode(connect_xml(status="Completed", completed="sometime last week"))


def test_unknown_status_maps_to_other():
    status = decode(connect_xml(status="Corrected", completed=None))
    assert status.status is EnvelopeState.OTHER
    assert status.raw_status == "Corrected"
    assert not status.is_completed


def test_duplicate_custom_field_names_first_match_wins():
    status = decode(connect_xml(custom_fields=[("Sales order", "first"), ("Sales order", "second")]))
    assert status.custom_field("Sales order") == "first"
    assert status.custom_field("missing") is None


def test_missing_optional_subfields_tolerated():
    xml = (
        "<DocuSignEnvelopeInformation><EnvelopeStatus>"
        "<EnvelopeID>e-1</EnvelopeID><Status>Delivered</Status>"
        "</EnvelopeStatus></DocuSignEnvelopeInformation>"
    )
    status = decode(xml)
    assert status.envelope_id == "e-1"
    assert status.created_at is None
    assert status.subject is None
    assert status.custom_fields == ()


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "not xml at all",
        "<DocuSignEnvelopeInformation><EnvelopeStatus>",
        "<SomethingElse/>",
        "<DocuSignEnvelopeInformation/>",
        "<DocuSignEnvelopeInformation><EnvelopeStatus><Status>Sent</Status></EnvelopeStatus></DocuSignEnvelopeInformation>",
        "<DocuSignEnvelopeInformation><EnvelopeStatus><EnvelopeID>e</EnvelopeID></EnvelopeStatus></DocuSignEnvelopeInformation>",
    ],
)
def test_decode_rejects_malformed_payloads(payload):
    with pytest.raises(DecodeError):
        decode(payload)


def test_parse_timestamp_truncates_long_fractions_and_tolerates_garbage():
    assert parse_timestamp("2021-01-02T03:04:05.1234567") == datetime(2021, 1, 2, 3, 4, 5, 123456)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_decode_message_test_and_xml_bodies():
    m = decode_message(json.dumps({"test": "123"}).encode())
    assert m.is_test and m.test == "123"

    m = decode_message(json.dumps({"test": "", "xml": "<x/>"}).encode())
    assert not m.is_test
    assert m.xml == "<x/>"

    m = decode_message(json.dumps({"test": 7}).encode())
    assert m.test == "7"


@pytest.mark.parametrize(
    "data",
    [b"", b"\xff\xfe", b"null", b"[]", b'"str"', b"{}", b'{"test": false, "xml": ""}', b'{"xml": {"a": 1}}'],
)
def test_decode_message_rejects_bad_bodies(data):
    with pytest.raises(DecodeError):
        decode_message(data)
