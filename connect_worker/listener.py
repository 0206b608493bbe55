"""
Queue listener: startup token check, then subscribe and reconnect forever.

States: DISCONNECTED -> CONNECTING -> SUBSCRIBED -> DISCONNECTED (on a
subscribe-level transport error, after a cool-down). Message handling runs
on the transport's callback threads, concurrently with this loop.
"""

from __future__ import annotations

import json
import logging
import sys
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Callable, Optional, TextIO

from connect_worker.auth.errors import ApiError, ConfigMissingError, ConsentRequiredError
from connect_worker.common.logging import log_event
from connect_worker.common.shutdown import shutdown_requested, wait_or_shutdown
from connect_worker.config import WorkerConfig

logger = logging.getLogger(__name__)

CONFIG_MISSING_TEXT = """
Problem: you need to configure this worker, either via environment variables
         (recommended) or via Secret Manager.
         See the README file for more information

"""

CONSENT_REQUIRED_TEXT = """
Problem:   C O N S E N T   R E Q U I R E D
    Ask the user who will be impersonated to run the following url:
        {url}

    It will ask the user to login and to approve access by your application.

    Alternatively, an Administrator can use Organization Administration to
    pre-approve one or more users.

"""

API_PROBLEM_TEXT = """
API problem: Status code {status}, message body:
{body}

"""


class ListenerState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class QueueListener:
    def __init__(
        self,
        config: WorkerConfig,
        *,
        subscriber_factory: Callable[[], Any],
        handler: Callable[[Any], Any],
        token_provider: Any,
        out: Optional[TextIO] = None,
    ) -> None:
        self._config = config
        self._subscriber_factory = subscriber_factory
        self._handler = handler
        self._tokens = token_provider
        self._out = out
        self._checked = False
        self.state = ListenerState.DISCONNECTED
        self.connect_attempts = 0

    def _print(self, text: str) -> None:
        out = self._out or sys.stdout
        out.write(text)
        out.flush()

    def startup_check(self) -> None:
        """
        One-time check that a DocuSign token can be obtained.

        Configuration and consent problems cannot be fixed by retrying, so
        they halt the process with operator guidance.
        """
        try:
            self._tokens.check_token()
        except ConfigMissingError as e:
            log_event(logger, "startup.config_missing", severity="CRITICAL", error=str(e))
            self._print(CONFIG_MISSING_TEXT)
            raise SystemExit(1) from e
        except ConsentRequiredError as e:
            log_event(logger, "startup.consent_required", severity="CRITICAL", consentUrl=e.consent_url)
            self._print(CONSENT_REQUIRED_TEXT.format(url=e.consent_url))
            raise SystemExit(1) from e
        except ApiError as e:
            log_event(logger, "startup.api_error", severity="CRITICAL", status_code=e.status_code, body=e.body)
            body = json.dumps(e.body, indent=4) if isinstance(e.body, (dict, list)) else str(e.body)
            self._print(API_PROBLEM_TEXT.format(status=e.status_code, body=body))
            raise SystemExit(1) from e
        log_event(logger, "startup.token_ok", accountId=getattr(self._tokens, "account_id", None))

    def connect_once(self) -> None:
        """
        One pass through CONNECTING -> SUBSCRIBED -> DISCONNECTED.

        Blocks while the subscription is healthy; returns after a transport
        error or a shutdown request.
        """
        self.state = ListenerState.CONNECTING
        self.connect_attempts += 1
        if not self._checked:
            self.startup_check()
            self._checked = True

        log_event(logger, "listener.starting", message="Starting queue worker", attempt=self.connect_attempts)
        subscriber = None
        future = None
        try:
            subscriber = self._subscriber_factory()
            future = subscriber.subscribe(self._handler)
            self.state = ListenerState.SUBSCRIBED
            log_event(
                logger,
                "listener.subscribed",
                subscription=getattr(subscriber, "subscription_path", self._config.subscription_id),
            )
            while not shutdown_requested():
                try:
                    future.result(timeout=1.0)
                except FutureTimeoutError:
                    continue
                # The stream finished without an error; treat it as a disconnect.
                break
        except Exception as e:
            log_event(
                logger,
                "listener.transport_error",
                severity="ERROR",
                message="Queue receive error",
                exc_info=True,
                error_type=e.__class__.__name__,
                error=str(e),
            )
        finally:
            if future is not None:
                try:
                    future.cancel()
                except Exception as e:
                    log_event(logger, "listener.cancel_failed", severity="WARNING", error=str(e))
            if subscriber is not None:
                close = getattr(subscriber, "close", None)
                try:
                    if callable(close):
                        close()
                except Exception as e:
                    log_event(logger, "listener.close_failed", severity="WARNING", error=str(e))
            self.state = ListenerState.DISCONNECTED

    def run_forever(self) -> None:
        while not shutdown_requested():
            self.connect_once()
            if shutdown_requested():
                break
            log_event(logger, "listener.cooldown", seconds=self._config.reconnect_cooldown_s)
            if wait_or_shutdown(self._config.reconnect_cooldown_s):
                break
        log_event(logger, "listener.stopped")
