"""Periodic duration ticker for recording sessions."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DurationTimer:
    """Calls a callback every interval on a daemon thread until cancelled."""

    def __init__(self, callback: Callable[[], None], interval_seconds: float = 1.0):
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = "DurationTimerThread"
        self.thread.start()

    def _run(self) -> None:
        while not self.stop_event.wait(self.interval_seconds):
            try:
                self.callback()
            except Exception:
                # A failing tick must not kill the timer while recording
                logger.exception("Duration tick failed")

    def cancel(self) -> None:
        """Stop ticking. Idempotent."""
        self.stop_event.set()
        thread, self.thread = self.thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Duration timer thread did not stop cleanly")
