"""
Thread-friendly graceful shutdown for the listener loop.

- A shared `threading.Event` set on SIGTERM/SIGINT.
- `wait_or_shutdown` replaces `time.sleep` in the reconnect cool-down so a
  shutdown request is honoured without waiting out the interval.

Previous signal handlers are chained; SIG_DFL is emulated with
`SystemExit(128+signal)` so `atexit` handlers still run.
"""

from __future__ import annotations

import signal
import threading
from types import FrameType
from typing import Any, Callable

SHUTDOWN_EVENT = threading.Event()

_INSTALLED = False
_LOCK = threading.Lock()


def request_shutdown() -> None:
    SHUTDOWN_EVENT.set()


def shutdown_requested() -> bool:
    return SHUTDOWN_EVENT.is_set()


def wait_or_shutdown(timeout_s: float) -> bool:
    """
    Interruptible wait.

    Returns True if shutdown was requested, False if the timeout elapsed.
    """
    return bool(SHUTDOWN_EVENT.wait(timeout=max(0.0, float(timeout_s))))


def _wrap_handler(prev: Any) -> Callable[[int, FrameType | None], Any]:
    def _handler(signum: int, frame: FrameType | None) -> Any:
        request_shutdown()

        if prev == signal.SIG_IGN:
            return None
        if prev == signal.SIG_DFL:
            raise SystemExit(128 + int(signum))
        if callable(prev):
            return prev(signum, frame)
        return None

    return _handler


def install_signal_handlers_once() -> None:
    global _INSTALLED
    if _INSTALLED:
        return
    # Signal handlers can only be installed from the main thread.
    if threading.current_thread() is not threading.main_thread():
        return
    with _LOCK:
        if _INSTALLED:
            return
        for s in (signal.SIGTERM, signal.SIGINT):
            prev = signal.getsignal(s)
            signal.signal(s, _wrap_handler(prev))
        _INSTALLED = True
