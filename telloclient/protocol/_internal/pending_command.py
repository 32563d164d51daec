# telloclient/protocol/_internal/pending_command.py
from __future__ import annotations

import itertools
import threading
import time
from concurrent.futures import Future, InvalidStateError
from typing import Any, Callable, Optional

from ..response import CommandResponse

_request_ids = itertools.count(1)


class PendingCommand:
    """Holds the Future of one queued command. Settles exactly once."""

    def __init__(
        self,
        command: str,
        timeout_s: float,
        max_retries: int,
        *,
        priority: bool = False,
        emergency: bool = False,
    ):
        self.request_id = next(_request_ids)
        self.command = str(command)
        self.timeout_s = float(timeout_s)
        self.max_retries = int(max_retries)
        self.priority = bool(priority)
        self.emergency = bool(emergency)
        self.created_at = time.perf_counter()
        self.attempts = 0
        self.future: Future = Future()
        self._settle_lock = threading.Lock()

    @property
    def payload(self) -> bytes:
        return self.command.encode("ascii")

    def add_done_callback(self, cb: Callable[[Future], Any]) -> Any:
        """Forward callback registration to the underlying Future."""
        return self.future.add_done_callback(cb)

    def result(self, *args: Any, **kwargs: Any) -> Any:
        """Forward result() to underlying Future."""
        return self.future.result(*args, **kwargs)

    def done(self) -> bool:
        return self.future.done()

    def cancelled(self) -> bool:
        return self.future.cancelled()

    def set_result(self, resp: CommandResponse) -> bool:
        """Settle with a reply. Returns False if the Future was already settled."""
        with self._settle_lock:
            if self.future.done():
                return False
            try:
                self.future.set_result(resp)
            except InvalidStateError:
                # cancelled by the caller between done() and here
                return False
            return True

    def set_exception(self, exc: BaseException) -> bool:
        """Settle with a failure. Returns False if the Future was already settled."""
        with self._settle_lock:
            if self.future.done():
                return False
            try:
                self.future.set_exception(exc)
            except InvalidStateError:
                return False
            return True

    def wait(self, timeout: Optional[float] = None) -> CommandResponse:
        """Blocking wait for completion; re-raises the failure, if any."""
        return self.future.result(timeout=timeout)

    def __repr__(self) -> str:
        flags = "".join(f for f, on in (("P", self.priority), ("E", self.emergency)) if on)
        return f"PendingCommand(id={self.request_id}, cmd={self.command!r}{', ' + flags if flags else ''})"
