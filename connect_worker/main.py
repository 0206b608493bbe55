"""
connect-worker entrypoint.

Consumes DocuSign Connect notifications from a Pub/Sub subscription and stores
the combined document of completed envelopes. Runs until SIGTERM/SIGINT, or
exits early when the DocuSign configuration/consent check fails.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from typing import Optional, Sequence

import requests

from connect_worker.actuator import LifxActuator
from connect_worker.auth.jwt_auth import JwtTokenProvider
from connect_worker.common.logging import init_structured_logging, log_event
from connect_worker.common.shutdown import install_signal_handlers_once
from connect_worker.config import WorkerConfig
from connect_worker.fulfillment.documents import DocumentStore
from connect_worker.fulfillment.executor import FulfillmentExecutor
from connect_worker.harness import TestHarness
from connect_worker.listener import QueueListener
from connect_worker.messaging.subscriber import PubSubSubscriber
from connect_worker.pipeline import NotificationPipeline

SERVICE_NAME = "connect-worker"

logger = logging.getLogger("connect_worker")


def build_listener(config: WorkerConfig) -> QueueListener:
    if not config.project_id or not config.subscription_id:
        raise RuntimeError("Missing required env vars: GCP_PROJECT and PUBSUB_SUBSCRIPTION_ID")

    session = requests.Session()
    tokens = JwtTokenProvider(config, session=session)
    executor = FulfillmentExecutor(
        config,
        token_provider=tokens,
        document_store=DocumentStore(session=session, timeout_s=config.http_timeout_s),
    )
    pipeline = NotificationPipeline(
        config,
        executor=executor,
        actuator=LifxActuator(config, session=session),
        harness=TestHarness(config),
    )
    return QueueListener(
        config,
        subscriber_factory=lambda: PubSubSubscriber(
            project_id=config.project_id,
            subscription_id=config.subscription_id,
            max_in_flight=config.max_in_flight,
        ),
        handler=pipeline,
        token_provider=tokens,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="DocuSign Connect queue worker")
    parser.add_argument("--debug", action="store_true", help="log every message, including ignored notifications")
    args = parser.parse_args(argv)

    config = WorkerConfig.from_env()
    if args.debug:
        config = replace(config, debug=True)

    init_structured_logging(
        service=os.getenv("SERVICE_NAME") or SERVICE_NAME,
        level="DEBUG" if config.debug else None,
    )
    install_signal_handlers_once()

    log_event(
        logger,
        "startup",
        subscription=config.subscription_id,
        outputDir=str(config.output_dir),
        keyField=config.key_field,
        colorField=config.color_field,
        breakTestEnabled=config.enable_break_test,
        lifxConfigured=config.is_lifx_configured,
        maxInFlight=config.max_in_flight,
    )

    listener = build_listener(config)
    try:
        listener.run_forever()
    except KeyboardInterrupt:
        log_event(logger, "shutdown.interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
