"""Exactly-once flush at process exit.

The flush callback runs from ``atexit`` (normal exit and uncaught
exceptions) or from a termination signal, whichever comes first. After a
signal, the previous handler is restored and the signal is delivered again
so the process still terminates the way it would have without multicov.
"""

from __future__ import annotations

import atexit
import os
import signal
import threading
from typing import Any, Callable, Dict, List, Optional

from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

HANDLED_SIGNALS = ("SIGTERM", "SIGHUP", "SIGINT")


def _available_signals() -> List[signal.Signals]:
    return [getattr(signal, name) for name in HANDLED_SIGNALS if hasattr(signal, name)]


class ExitLifecycle:
    """Runs a flush callback once, on exit or on a termination signal."""

    def __init__(self, flush: Callable[[], None], signals: bool = True):
        """Initialize ExitLifecycle.

        Args:
            flush: Callback that persists coverage.
            signals: Also install handlers for termination signals.
        """
        self._flush = flush
        self._handle_signals = signals
        self._lock = threading.Lock()
        self._done = False
        self._installed = False
        self._previous: Dict[int, Any] = {}

    @property
    def flushed(self) -> bool:
        return self._done

    def install(self) -> None:
        """Register the atexit hook and signal handlers.

        Call early: atexit callbacks run last-in first-out, so registering
        first means the flush runs after cleanup registered later.
        """
        if self._installed:
            return
        atexit.register(self.run)
        if self._handle_signals and threading.current_thread() is threading.main_thread():
            for sig in _available_signals():
                try:
                    self._previous[sig] = signal.signal(sig, self._on_signal)
                except (OSError, ValueError) as e:
                    LOGGER.debug(f"Cannot handle {sig.name}: {e}")
        self._installed = True

    def uninstall(self) -> None:
        """Remove the atexit hook and restore previous signal handlers."""
        if not self._installed:
            return
        atexit.unregister(self.run)
        self._restore_signals()
        self._installed = False

    def run(self) -> bool:
        """Flush if nobody has yet.

        Returns:
            True if this call performed the flush.
        """
        with self._lock:
            if self._done:
                return False
            self._done = True
        self._flush()
        return True

    def _restore_signals(self) -> None:
        for sig, previous in self._previous.items():
            try:
                signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
            except (OSError, ValueError) as e:
                LOGGER.debug(f"Cannot restore handler for signal {sig}: {e}")
        self._previous = {}

    def _on_signal(self, signum: int, frame: Optional[Any]) -> None:
        previous = self._previous.get(signum)
        try:
            self.run()
        finally:
            self._restore_signals()
            if callable(previous):
                previous(signum, frame)
            elif previous != signal.SIG_IGN:
                os.kill(os.getpid(), signum)
