from .decoder import DecodeError, decode, decode_message
from .eligibility import extract_key, extract_secondary, ineligible_reason, is_eligible, sanitize_key
from .envelope import EnvelopeState, EnvelopeStatus, NotificationMessage

__all__ = [
    "DecodeError",
    "EnvelopeState",
    "EnvelopeStatus",
    "NotificationMessage",
    "decode",
    "decode_message",
    "extract_key",
    "extract_secondary",
    "ineligible_reason",
    "is_eligible",
    "sanitize_key",
]
