"""
Pure filtering rules over decoded envelope status.

Connect sends notifications for every envelope in the account, sent by
anyone. Ineligible notifications are acked and ignored, never rejected:
a rejection only makes the broker deliver them again.
"""

from __future__ import annotations

import re
from typing import Optional

from connect_worker.notifications.envelope import EnvelopeStatus

_NON_WORD_RE = re.compile(r"\W")

REASON_NOT_COMPLETED = "status_not_completed"
REASON_MISSING_KEY = "missing_business_key"


def sanitize_key(key: str) -> str:
    return _NON_WORD_RE.sub("_", key)


def _lookup(status: EnvelopeStatus, field_name: str) -> Optional[str]:
    v = status.custom_field(field_name)
    if v is None or not v.strip():
        return None
    return v


def extract_key(status: EnvelopeStatus, field_name: str) -> Optional[str]:
    return _lookup(status, field_name)


def extract_secondary(status: EnvelopeStatus, field_name: str) -> Optional[str]:
    return _lookup(status, field_name)


def ineligible_reason(status: EnvelopeStatus, key_field: str) -> Optional[str]:
    if not status.is_completed:
        return REASON_NOT_COMPLETED
    key = extract_key(status, key_field)
    if key is None or not sanitize_key(key):
        return REASON_MISSING_KEY
    return None


def is_eligible(status: EnvelopeStatus, key_field: str) -> bool:
    return ineligible_reason(status, key_field) is None
