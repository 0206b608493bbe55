"""
Crash-recovery test harness.

Test messages carry a value instead of a Connect notification. Each value is
pushed onto a ring of marker files: `test1.txt` is always the newest,
`test2.txt` the one before, and so on. After sending v1..vK and letting the
worker crash and restart in between, the ring shows whether any message was
lost or reordered.

A value containing `/break` (with break tests enabled) kills the process
before any file is touched, as a worker crash mid-message.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from connect_worker.common.logging import log_event
from connect_worker.config import BREAK_MARKER, WorkerConfig

logger = logging.getLogger(__name__)

BREAK_EXIT_CODE = 2
TEST_DATA_LOCK = "test_data"

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def named_lock(name: str) -> threading.Lock:
    """Process-wide lock registry; one lock per name."""
    with _LOCKS_GUARD:
        lock = _LOCKS.get(name)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[name] = lock
        return lock


def marker_name(i: int) -> str:
    return f"test{i}.txt"


def read_markers(directory: Path, count: int) -> List[Optional[str]]:
    out: List[Optional[str]] = []
    for i in range(1, count + 1):
        p = Path(directory) / marker_name(i)
        out.append(p.read_text(encoding="utf-8") if p.is_file() else None)
    return out


class TestHarness:
    __test__ = False  # not a pytest class

    def __init__(self, config: WorkerConfig, *, exit_fn: Callable[[int], None] = os._exit) -> None:
        self._config = config
        self._exit = exit_fn
        self._lock = named_lock(TEST_DATA_LOCK)

    @property
    def directory(self) -> Path:
        return Path(self._config.test_output_dir)

    def run_test(self, value: str) -> None:
        with self._lock:
            self._run_locked(value)

    def _run_locked(self, value: str) -> None:
        if self._config.enable_break_test and BREAK_MARKER in str(value):
            log_event(logger, "harness.break", severity="CRITICAL", message="BREAKING worker test!", value=value)
            for h in logging.getLogger().handlers:
                h.flush()
            self._exit(BREAK_EXIT_CODE)
            return

        log_event(logger, "harness.processing", message=f"Processing test value {value}", value=value)
        directory = self.directory
        directory.mkdir(parents=True, exist_ok=True)

        # Shift test{N-1} -> test{N}, ..., test1 -> test2; the oldest falls off.
        for i in range(self._config.test_ring_size - 1, 0, -1):
            src = directory / marker_name(i)
            try:
                os.replace(src, directory / marker_name(i + 1))
            except FileNotFoundError:
                continue

        (directory / marker_name(1)).write_text(str(value), encoding="utf-8")
