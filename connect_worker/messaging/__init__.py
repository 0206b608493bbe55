"""
Queue transport boundary.

- `RawMessage`: one delivery with settle-once ack()/nack()
- `PubSubSubscriber`: streaming-pull subscription (lazy-imported client)
- `TestMessagePublisher`: enqueues harness test values
"""

from .publisher import TestMessagePublisher
from .subscriber import MessageHandler, PubSubSubscriber, RawMessage

__all__ = [
    "MessageHandler",
    "PubSubSubscriber",
    "RawMessage",
    "TestMessagePublisher",
]
