"""
Per-message state machine: decode -> filter -> fulfill -> actuate -> settle.

Settlement policy:
- undecodable or ineligible: ack (redelivery cannot change the outcome)
- fulfillment failure: nack (the broker redelivers with its backoff)
- actuator failure: ignored, the message is still acked
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from connect_worker.actuator import LifxActuator
from connect_worker.common.logging import bind_message_id, log_event
from connect_worker.config import WorkerConfig
from connect_worker.fulfillment.executor import FulfillmentError, FulfillmentExecutor
from connect_worker.harness import TestHarness
from connect_worker.messaging.subscriber import RawMessage
from connect_worker.notifications.decoder import DecodeError, decode, decode_message
from connect_worker.notifications.eligibility import (
    REASON_MISSING_KEY,
    extract_key,
    extract_secondary,
    ineligible_reason,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    ACKED_TEST = "acked_test"
    ACKED_UNDECODABLE = "acked_undecodable"
    ACKED_IGNORED = "acked_ignored"
    ACKED_FULFILLED = "acked_fulfilled"
    NACKED = "nacked"


def _iso(v: Any) -> Any:
    return v.isoformat() if v is not None else None


class NotificationPipeline:
    def __init__(
        self,
        config: WorkerConfig,
        *,
        executor: FulfillmentExecutor,
        actuator: LifxActuator,
        harness: TestHarness,
    ) -> None:
        self._config = config
        self._executor = executor
        self._actuator = actuator
        self._harness = harness

    def __call__(self, message: RawMessage) -> Outcome:
        return self.handle(message)

    def handle(self, message: RawMessage) -> Outcome:
        with bind_message_id(message.id):
            try:
                outcome = self._process(message)
            except Exception as e:
                log_event(
                    logger,
                    "pipeline.exception",
                    severity="ERROR",
                    exc_info=True,
                    messageId=message.id,
                    error_type=e.__class__.__name__,
                    error=str(e),
                )
                outcome = Outcome.NACKED
            self._settle(message, outcome)
            return outcome

    def _settle(self, message: RawMessage, outcome: Outcome) -> None:
        how = "nack" if outcome is Outcome.NACKED else "ack"
        try:
            if how == "nack":
                message.nack()
            else:
                message.ack()
        except Exception as e:
            log_event(
                logger,
                "pubsub.settle_failed",
                severity="ERROR",
                exc_info=True,
                messageId=message.id,
                settle=how,
                error=str(e),
            )

    def _process(self, message: RawMessage) -> Outcome:
        if self._config.debug:
            log_event(
                logger,
                "pipeline.received",
                severity="DEBUG",
                message=f"Processing message id {message.id}",
                messageId=message.id,
                deliveryAttempt=message.delivery_attempt,
            )

        try:
            body = decode_message(message.payload)
        except DecodeError as e:
            log_event(
                logger,
                "pipeline.bad_body",
                severity="WARNING",
                message=f"Null or bad body in message id {message.id}. Ignoring.",
                messageId=message.id,
                error=str(e),
            )
            return Outcome.ACKED_UNDECODABLE

        if body.is_test:
            self._harness.run_test(body.test or "")
            return Outcome.ACKED_TEST

        try:
            status = decode(body.xml or "")
        except DecodeError as e:
            log_event(
                logger,
                "pipeline.bad_notification",
                severity="WARNING",
                messageId=message.id,
                error=str(e),
            )
            return Outcome.ACKED_UNDECODABLE

        business_key = extract_key(status, self._config.key_field)
        color = extract_secondary(status, self._config.color_field)
        log_event(
            logger,
            "envelope.status",
            message=f"EnvelopeId {status.envelope_id} Status: {status.raw_status}",
            envelopeId=status.envelope_id,
            status=status.raw_status,
            businessKey=business_key,
            subject=status.subject,
            sender=status.sender_name,
            senderEmail=status.sender_email,
            color=color,
            createdAt=_iso(status.created_at),
            completedAt=_iso(status.completed_at),
        )

        reason = ineligible_reason(status, self._config.key_field)
        if reason is not None or business_key is None:
            if self._config.debug:
                log_event(
                    logger,
                    "envelope.ignored",
                    severity="DEBUG",
                    envelopeId=status.envelope_id,
                    status=status.raw_status,
                    reason=reason or REASON_MISSING_KEY,
                    keyField=self._config.key_field,
                )
            return Outcome.ACKED_IGNORED

        try:
            self._executor.fulfill(status.envelope_id, business_key)
        except FulfillmentError:
            # Already logged with envelope/key context by the executor.
            return Outcome.NACKED

        if color:
            self._actuator.actuate(color)
        return Outcome.ACKED_FULFILLED
