from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class EnvelopeState(str, Enum):
    CREATED = "Created"
    SENT = "Sent"
    DELIVERED = "Delivered"
    SIGNED = "Signed"
    COMPLETED = "Completed"
    DECLINED = "Declined"
    VOIDED = "Voided"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    AUTO_RESPONDED = "AutoResponded"
    # Any status this worker has no name for; never eligible.
    OTHER = "Other"

    @classmethod
    def parse(cls, raw: str) -> "EnvelopeState":
        s = (raw or "").strip().lower()
        for member in cls:
            if member is not cls.OTHER and member.value.lower() == s:
                return member
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class NotificationMessage:
    """
    JSON body of one queue message.

    `test` non-empty means a harness message; otherwise `xml` carries the
    Connect notification.
    """

    test: Optional[str]
    xml: Optional[str]

    @property
    def is_test(self) -> bool:
        return bool(self.test)


@dataclass(frozen=True, slots=True)
class EnvelopeStatus:
    envelope_id: str
    status: EnvelopeState
    raw_status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    subject: Optional[str] = None
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    # Ordered (name, value) pairs; names may repeat.
    custom_fields: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.status is EnvelopeState.COMPLETED

    def custom_field(self, name: str) -> Optional[str]:
        for field_name, value in self.custom_fields:
            if field_name == name:
                return value
        return None
