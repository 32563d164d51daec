# telloclient/runtime/events.py
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

Listener = Callable[..., None]

# Event kinds published by TelloClient
STATE = "state"
FRAME = "frame"
RESPONSE = "response"
EMERGENCY = "emergency"
STREAM_ENDED = "stream-ended"
VIDEO_START = "video-start"
VIDEO_STOP = "video-stop"


class EventBus:
    """
    Listener registry per event kind.

    Delivery is synchronous, on the publishing thread, in registration order.
    No ordering is promised across kinds. A failing listener is logged and
    does not stop delivery to the others.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, kind: str, cb: Listener) -> Listener:
        with self._lock:
            self._listeners.setdefault(kind, []).append(cb)
        return cb

    def once(self, kind: str, cb: Listener) -> Listener:
        def _wrapper(*args: Any) -> None:
            self.off(kind, _wrapper)
            cb(*args)

        return self.on(kind, _wrapper)

    def off(self, kind: str, cb: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(kind)
            if listeners and cb in listeners:
                listeners.remove(cb)

    def clear(self, kind: Optional[str] = None) -> None:
        with self._lock:
            if kind is None:
                self._listeners.clear()
            else:
                self._listeners.pop(kind, None)

    def listener_count(self, kind: str) -> int:
        with self._lock:
            return len(self._listeners.get(kind, ()))

    def emit(self, kind: str, *args: Any) -> int:
        """Deliver to every listener of `kind`; returns how many were called."""
        with self._lock:
            listeners = list(self._listeners.get(kind, ()))
        for cb in listeners:
            try:
                cb(*args)
            except Exception:
                self._log.exception("EVENT_LISTENER_ERROR kind=%s", kind)
        return len(listeners)
