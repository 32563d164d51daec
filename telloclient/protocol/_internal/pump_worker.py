# telloclient/protocol/_internal/pump_worker.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional


class PumpWorker(threading.Thread):
    """
    Daemon thread calling a pump function until stopped.

    Each pump call does one bounded wait (a socket read with timeout, or the
    dispatcher's idle wait) and handles whatever it got. Exceptions are logged
    and the loop keeps going.
    """

    def __init__(
        self,
        pump: Callable[[], None],
        *,
        name: str = "rx",
        logger: Optional[logging.Logger] = None,
        error_backoff_s: float = 0.01,
    ):
        super().__init__(daemon=True, name=f"telloclient-{name}")
        self._pump = pump
        self._log = logger or logging.getLogger(__name__)
        self._error_backoff_s = float(error_backoff_s)
        self._stop_event = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._pump()
            except Exception:
                if self._stop_event.is_set():
                    break
                self._log.exception("PUMP_WORKER_EXCEPTION worker=%s", self.name)
                self._stop_event.wait(self._error_backoff_s)

    def stop(self) -> None:
        self._stop_event.set()
