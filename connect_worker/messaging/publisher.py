from __future__ import annotations

import json
import logging
from typing import Any, Optional

from connect_worker.common.logging import log_event

logger = logging.getLogger(__name__)


class TestMessagePublisher:
    """
    Publishes harness test messages (`{"test": value}`) to the worker's topic.

    Lazy-imports `google.cloud.pubsub_v1` like the subscriber does.
    """

    __test__ = False  # not a pytest class

    def __init__(self, *, project_id: str, topic_id: str, publisher_client: Any = None) -> None:
        self.project_id = str(project_id)
        self.topic_id = str(topic_id)

        if publisher_client is None:
            try:
                from google.cloud import pubsub_v1  # type: ignore
            except Exception as e:  # pragma: no cover
                raise RuntimeError(
                    "google-cloud-pubsub is required to use TestMessagePublisher. "
                    "Install with: pip install google-cloud-pubsub"
                ) from e
            publisher_client = pubsub_v1.PublisherClient()

        self._client = publisher_client
        t = self.topic_id
        if t.startswith("projects/") and "/topics/" in t:
            self._topic_path = t
        else:
            self._topic_path = self._client.topic_path(self.project_id, t)

    @property
    def topic_path(self) -> str:
        return self._topic_path

    @staticmethod
    def encode(value: str, *, xml: Optional[str] = None) -> bytes:
        body: dict[str, Any] = {"test": str(value)}
        if xml is not None:
            body["xml"] = xml
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def publish_test(self, value: str, *, timeout_s: float = 15.0) -> str:
        future = self._client.publish(self._topic_path, self.encode(value))
        message_id = str(future.result(timeout=max(0.1, float(timeout_s))))
        log_event(logger, "harness.published", value=value, messageId=message_id, topic=self._topic_path)
        return message_id
