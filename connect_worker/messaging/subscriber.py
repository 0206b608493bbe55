from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from connect_worker.common.logging import log_event

logger = logging.getLogger(__name__)


class RawMessage:
    """
    One queue delivery: id, payload bytes, ack(), nack().

    The transport owns the message until it is settled. Settlement happens at
    most once; a second ack/nack is ignored and logged.
    """

    def __init__(
        self,
        *,
        message_id: str,
        payload: bytes,
        ack: Callable[[], Any],
        nack: Callable[[], Any],
        delivery_attempt: Optional[int] = None,
    ) -> None:
        self.id = str(message_id)
        self.payload = payload
        self.delivery_attempt = delivery_attempt
        self._ack = ack
        self._nack = nack
        self._settled: Optional[str] = None
        self._lock = threading.Lock()

    @staticmethod
    def from_pubsub(message: Any) -> "RawMessage":
        return RawMessage(
            message_id=str(getattr(message, "message_id", "") or ""),
            payload=bytes(getattr(message, "data", b"") or b""),
            ack=message.ack,
            nack=message.nack,
            delivery_attempt=getattr(message, "delivery_attempt", None),
        )

    @property
    def settled(self) -> Optional[str]:
        return self._settled

    def _settle(self, how: str, fn: Callable[[], Any]) -> bool:
        with self._lock:
            if self._settled is not None:
                log_event(
                    logger,
                    "pubsub.settle_ignored",
                    severity="WARNING",
                    messageId=self.id,
                    requested=how,
                    settled=self._settled,
                )
                return False
            self._settled = how
        fn()
        return True

    def ack(self) -> bool:
        return self._settle("ack", self._ack)

    def nack(self) -> bool:
        return self._settle("nack", self._nack)


MessageHandler = Callable[[RawMessage], Any]


class PubSubSubscriber:
    """
    Google Pub/Sub streaming-pull subscriber.

    Lazy-imports `google.cloud.pubsub_v1` so the package imports in
    environments without the Pub/Sub client (tests inject a fake client).
    """

    def __init__(
        self,
        *,
        project_id: str,
        subscription_id: str,
        max_in_flight: int = 10,
        subscriber_client: Any = None,
    ) -> None:
        self.project_id = str(project_id)
        self.subscription_id = str(subscription_id)
        self.max_in_flight = max(1, int(max_in_flight))

        if subscriber_client is None:
            try:
                from google.cloud import pubsub_v1  # type: ignore
            except Exception as e:  # pragma: no cover
                raise RuntimeError(
                    "google-cloud-pubsub is required to use PubSubSubscriber. "
                    "Install with: pip install google-cloud-pubsub"
                ) from e
            subscriber_client = pubsub_v1.SubscriberClient()

        self._client = subscriber_client
        self._subscription_path = self._client.subscription_path(self.project_id, self.subscription_id)

    @property
    def subscription_path(self) -> str:
        return self._subscription_path

    def _flow_control(self) -> Any:
        try:
            from google.cloud import pubsub_v1  # type: ignore
        except Exception:  # pragma: no cover
            return None
        return pubsub_v1.types.FlowControl(max_messages=self.max_in_flight)

    def subscribe(self, handler: MessageHandler) -> Any:
        """
        Start a streaming pull subscription.

        Returns the Pub/Sub StreamingPullFuture. Callbacks run concurrently
        on the client's executor; the caller owns the future's lifecycle.
        """

        def _callback(message: Any) -> None:
            handler(RawMessage.from_pubsub(message))

        kwargs: dict[str, Any] = {"callback": _callback}
        flow_control = self._flow_control()
        if flow_control is not None:
            kwargs["flow_control"] = flow_control
        return self._client.subscribe(self._subscription_path, **kwargs)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
