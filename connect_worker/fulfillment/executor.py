"""
Idempotent fulfillment: download the combined document of a completed
envelope and store it under a path derived only from the business key.

Duplicate notifications are expected (at-least-once delivery). Re-running
fulfillment for the same key downloads again and overwrites the same file,
so retries converge on one artifact.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Any

from connect_worker.common.logging import log_event
from connect_worker.config import BREAK_MARKER, WorkerConfig
from connect_worker.fulfillment.documents import DocumentStore
from connect_worker.notifications.eligibility import sanitize_key

logger = logging.getLogger(__name__)


class FulfillmentError(RuntimeError):
    def __init__(self, envelope_id: str, business_key: str, cause: BaseException) -> None:
        super().__init__(f"fulfillment failed for envelope {envelope_id}, key {business_key}: {cause}")
        self.envelope_id = envelope_id
        self.business_key = business_key


class BreakTestFault(RuntimeError):
    pass


def _write_atomic(path: Path, data: bytes) -> None:
    # Created with 0o666 so the process umask decides the final mode.
    tmp = str(path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class FulfillmentExecutor:
    def __init__(self, config: WorkerConfig, *, token_provider: Any, document_store: DocumentStore) -> None:
        self._config = config
        self._tokens = token_provider
        self._documents = document_store

    def output_path(self, business_key: str) -> Path:
        file_name = f"{self._config.output_file_prefix}{sanitize_key(business_key)}.pdf"
        return Path(self._config.output_dir) / file_name

    def fulfill(self, envelope_id: str, business_key: str) -> Path:
        try:
            token = self._tokens.get_valid_token()
            data = self._documents.get_combined_document(
                token=token,
                base_path=self._tokens.base_path,
                account_id=self._tokens.account_id,
                envelope_id=envelope_id,
            )

            path = self.output_path(business_key)
            path.parent.mkdir(parents=True, exist_ok=True)
            _write_atomic(path, data)

            if self._config.enable_break_test and BREAK_MARKER in business_key:
                raise BreakTestFault("Break test")
        except Exception as e:
            log_event(
                logger,
                "fulfillment.failed",
                severity="ERROR",
                message=f"Error while fetching and saving docs for envelope {envelope_id}, key {business_key}",
                exc_info=True,
                envelopeId=envelope_id,
                businessKey=business_key,
                error_type=e.__class__.__name__,
                error=str(e),
            )
            raise FulfillmentError(envelope_id, business_key, e) from e

        log_event(
            logger,
            "fulfillment.saved",
            envelopeId=envelope_id,
            businessKey=business_key,
            path=str(path),
            bytes=len(data),
        )
        return path
