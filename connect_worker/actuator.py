"""
Best-effort LIFX light colour change, driven by an envelope custom field.

The primary fulfillment has already succeeded when this runs, so a failure
here is logged and dropped: redelivering the message just to retry a light
would repeat the download for nothing.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from connect_worker.common.logging import log_event
from connect_worker.config import WorkerConfig

logger = logging.getLogger(__name__)

LIFX_API_BASE = "https://api.lifx.com/v1"


class LifxActuator:
    def __init__(self, config: WorkerConfig, *, session: Any = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return self._config.is_lifx_configured

    def set_color(self, selector: str, color: str) -> None:
        resp = self._session.put(
            f"{LIFX_API_BASE}/lights/{selector}/state",
            headers={"Authorization": f"Bearer {self._config.lifx_access_token}"},
            data={"power": "on", "color": color, "duration": 0.0},
            timeout=self._config.http_timeout_s,
        )
        resp.raise_for_status()

    def actuate(self, color: str) -> bool:
        if not color or not self.enabled:
            return False
        try:
            self.set_color(self._config.lifx_selector, color)
        except Exception as e:
            log_event(
                logger,
                "actuator.failed",
                severity="WARNING",
                selector=self._config.lifx_selector,
                color=color,
                error_type=e.__class__.__name__,
                error=str(e),
            )
            return False
        log_event(logger, "actuator.color_set", selector=self._config.lifx_selector, color=color)
        return True
