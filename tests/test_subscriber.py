from __future__ import annotations

import json

from connect_worker.messaging.publisher import TestMessagePublisher
from connect_worker.messaging.subscriber import PubSubSubscriber, RawMessage
from tests.conftest import FakeDelivery


class _SubscriberClient:
    def __init__(self):
        self.subscribed = []

    def subscription_path(self, project, sub):
        return f"projects/{project}/subscriptions/{sub}"

    def subscribe(self, path, callback, **kwargs):
        self.subscribed.append((path, callback, kwargs))
        return "future"


class _PublishFuture:
    def __init__(self, mid):
        self._mid = mid

    def result(self, timeout=None):
        return self._mid


class _PublisherClient:
    def __init__(self):
        self.published = []

    def topic_path(self, project, topic):
        return f"projects/{project}/topics/{topic}"

    def publish(self, topic_path, data, **attrs):
        self.published.append((topic_path, data))
        return _PublishFuture(str(len(self.published)))


def test_ack_and_nack_settle_at_most_once():
    d = FakeDelivery("m-1", b"{}")
    m = d.raw()
    assert m.ack() is True
    assert m.nack() is False
    assert m.ack() is False
    assert (d.acks, d.nacks) == (1, 0)
    assert m.settled == "ack"


def test_nack_first_blocks_ack():
    d = FakeDelivery("m-1", b"{}")
    m = d.raw()
    m.nack()
    m.ack()
    assert (d.acks, d.nacks) == (0, 1)


def test_from_pubsub_copies_id_and_payload():
    m = RawMessage.from_pubsub(FakeDelivery("m-7", b"payload"))
    assert m.id == "m-7"
    assert m.payload == b"payload"
    assert m.delivery_attempt == 1


def test_subscribe_wraps_pubsub_messages():
    client = _SubscriberClient()
    sub = PubSubSubscriber(project_id="proj", subscription_id="connect-sub", subscriber_client=client, max_in_flight=3)
    received = []

    assert sub.subscribe(received.append) == "future"
    path, callback, _kwargs = client.subscribed[0]
    assert path == "projects/proj/subscriptions/connect-sub"
    assert sub.subscription_path == path

    callback(FakeDelivery("m-1", b"x"))
    assert isinstance(received[0], RawMessage)
    assert received[0].id == "m-1"


def test_publisher_encodes_test_value():
    client = _PublisherClient()
    pub = TestMessagePublisher(project_id="proj", topic_id="connect", publisher_client=client)

    assert pub.publish_test("run-1") == "1"
    topic, data = client.published[0]
    assert topic == "projects/proj/topics/connect"
    assert json.loads(data) == {"test": "run-1"}


def test_publisher_accepts_full_topic_path():
    pub = TestMessagePublisher(project_id="ignored", topic_id="projects/p/topics/t", publisher_client=_PublisherClient())
    assert pub.topic_path == "projects/p/topics/t"
