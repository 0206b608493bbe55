"""
Decoding of queue message bodies and DocuSign Connect XML.

Connect posts `DocuSignEnvelopeInformation` documents in the
`http://www.docusign.net/API/3.0` namespace; lookups here use local element
names so namespaced and bare documents decode the same way.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

from connect_worker.notifications.envelope import EnvelopeState, EnvelopeStatus, NotificationMessage

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class DecodeError(ValueError):
    pass


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for c in elem:
        if _local(c.tag) == name:
            return c
    return None


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [c for c in elem if _local(c.tag) == name]


def _text(elem: ET.Element, name: str) -> Optional[str]:
    c = _child(elem, name)
    if c is None or c.text is None:
        return None
    s = c.text.strip()
    return s or None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Connect timestamps look like `2020-05-12T03:09:53.937` (local account
    time, no offset). Fractions beyond microseconds are truncated.
    """
    if not value:
        return None
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    s = _FRACTION_RE.sub(r"\1", s)
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def _custom_fields(status_elem: ET.Element) -> Tuple[Tuple[str, str], ...]:
    container = _child(status_elem, "CustomFields")
    if container is None:
        return ()
    out: List[Tuple[str, str]] = []
    for f in _children(container, "CustomField"):
        name = _text(f, "Name")
        if name is None:
            continue
        out.append((name, _text(f, "Value") or ""))
    return tuple(out)


def decode(payload: Union[str, bytes]) -> EnvelopeStatus:
    if payload is None or (isinstance(payload, (str, bytes)) and not payload.strip()):
        raise DecodeError("empty notification payload")
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise DecodeError(f"notification is not well-formed XML: {e}") from e

    if _local(root.tag) != "DocuSignEnvelopeInformation":
        raise DecodeError(f"unexpected root element: {_local(root.tag)}")

    status_elem = _child(root, "EnvelopeStatus")
    if status_elem is None:
        raise DecodeError("missing EnvelopeStatus section")

    envelope_id = _text(status_elem, "EnvelopeID")
    if not envelope_id:
        raise DecodeError("missing EnvelopeStatus/EnvelopeID")
    raw_status = _text(status_elem, "Status")
    if not raw_status:
        raise DecodeError(f"missing EnvelopeStatus/Status for envelope {envelope_id}")

    state = EnvelopeState.parse(raw_status)
    completed_at = None
    if state is EnvelopeState.COMPLETED:
        completed_raw = _text(status_elem, "Completed")
        if not completed_raw:
            raise DecodeError(f"completed envelope {envelope_id} has no Completed timestamp")
        completed_at = parse_timestamp(completed_raw)
        if completed_at is None:
            raise DecodeError(f"completed envelope {envelope_id} has unparseable Completed timestamp {completed_raw!r}")

    return EnvelopeStatus(
        envelope_id=envelope_id,
        status=state,
        raw_status=raw_status,
        created_at=parse_timestamp(_text(status_elem, "Created")),
        completed_at=completed_at,
        subject=_text(status_elem, "Subject"),
        sender_name=_text(status_elem, "UserName"),
        sender_email=_text(status_elem, "Email"),
        custom_fields=_custom_fields(status_elem),
    )


def _optional_str(body: dict[str, Any], key: str) -> Optional[str]:
    v = body.get(key)
    if v is None or v is False:
        return None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    if not isinstance(v, str):
        raise DecodeError(f"field {key!r} must be a string")
    return v or None


def decode_message(data: bytes) -> NotificationMessage:
    try:
        body = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"message body is not JSON: {e}") from e
    if not isinstance(body, dict):
        raise DecodeError("message body must decode to an object")

    test = _optional_str(body, "test")
    xml = _optional_str(body, "xml")
    if not test and not xml:
        raise DecodeError("message body has neither a test value nor xml")
    return NotificationMessage(test=test, xml=xml)
