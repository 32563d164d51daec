# telloclient/video/assembler.py
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from telloclient.core.errors import FrameTimeout, StreamEndedError

JPEG_SOI = b"\xff\xd8"
JPEG_EOI = b"\xff\xd9"
MAX_BUFFER_BYTES = 5_000_000
POLL_INTERVAL_S = 0.02

FrameCallback = Callable[[bytes], None]
EndCallback = Callable[[str], None]


class FrameAssembler:
    """
    Splits a continuous decoder byte stream into frames.

    A frame runs from a start marker (inclusive) to the first end marker found
    after it (inclusive). Bytes are never interpreted beyond the two markers.
    Partial frames stay buffered between feeds; a buffer that grows past
    `max_buffer` without yielding a frame is dropped entirely.
    """

    def __init__(
        self,
        *,
        start_marker: bytes = JPEG_SOI,
        end_marker: bytes = JPEG_EOI,
        max_buffer: int = MAX_BUFFER_BYTES,
        poll_interval_s: float = POLL_INTERVAL_S,
        logger: Optional[logging.Logger] = None,
    ):
        if not start_marker or not end_marker:
            raise ValueError("frame markers must be non-empty")
        self.start_marker = bytes(start_marker)
        self.end_marker = bytes(end_marker)
        self.max_buffer = int(max_buffer)
        self.poll_interval_s = float(poll_interval_s)

        self.buffer = bytearray()
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._listeners: List[FrameCallback] = []
        self._end_listeners: List[EndCallback] = []
        self._active = False
        self._end_reason: Optional[str] = None

        self.frames_emitted = 0
        self.bytes_dropped = 0

    # ---------------- Lifecycle ----------------
    @property
    def active(self) -> bool:
        return self._active

    @property
    def end_reason(self) -> Optional[str]:
        return self._end_reason

    def open(self) -> None:
        """Mark the upstream source live; pull consumers keep waiting while it is."""
        self._end_reason = None
        self._active = True

    def end_stream(self, reason: str = "stream ended") -> None:
        """Upstream source terminated. Notifies listeners once per open()."""
        if not self._active and self._end_reason is not None:
            return
        self._active = False
        self._end_reason = reason
        self._log.info("FRAME_STREAM_ENDED reason=%s buffered=%d", reason, len(self.buffer))

        for cb in list(self._end_listeners):
            try:
                cb(reason)
            except Exception:
                self._log.exception("STREAM_END_CALLBACK_ERROR")

    def reset(self) -> None:
        """Discard buffered bytes (decoder restart)."""
        with self._lock:
            self.buffer.clear()

    # ---------------- Feeding ----------------
    def feed(self, data: bytes) -> int:
        """Append decoder output, emit every complete frame; returns the count."""
        with self._lock:
            self.buffer.extend(data)
            frames = self._extract_locked()

            if len(self.buffer) > self.max_buffer:
                self.bytes_dropped += len(self.buffer)
                self._log.warning(
                    "FRAME_BUFFER_OVERFLOW dropped=%d max=%d", len(self.buffer), self.max_buffer
                )
                self.buffer.clear()

        for frame in frames:
            self._emit(frame)
        return len(frames)

    def _extract_locked(self) -> List[bytes]:
        frames: List[bytes] = []
        marker_len = len(self.start_marker)
        while True:
            start = self.buffer.find(self.start_marker)
            if start < 0:
                break
            end = self.buffer.find(self.end_marker, start + marker_len)
            if end < 0:
                break
            stop = end + len(self.end_marker)
            frames.append(bytes(self.buffer[start:stop]))
            del self.buffer[:stop]
        return frames

    # ---------------- Push consumers ----------------
    def subscribe(self, cb: FrameCallback) -> None:
        self._listeners.append(cb)

    def unsubscribe(self, cb: FrameCallback) -> None:
        try:
            self._listeners.remove(cb)
        except ValueError:
            pass

    def on_end(self, cb: EndCallback) -> None:
        self._end_listeners.append(cb)

    def remove_on_end(self, cb: EndCallback) -> None:
        try:
            self._end_listeners.remove(cb)
        except ValueError:
            pass

    def _emit(self, frame: bytes) -> None:
        self.frames_emitted += 1
        for cb in list(self._listeners):
            try:
                cb(frame)
            except Exception:
                self._log.exception("FRAME_CALLBACK_ERROR size=%d", len(frame))

    # ---------------- Pull consumers ----------------
    def frames(self) -> "FrameIterator":
        """
        Iterator over frames while the stream is active, then drains what is left.

        Subscribes on call, so frames emitted before the first next() are kept.
        Idle waits are a fixed poll interval rather than a wake-up. Exhaust or
        close() the iterator (or use it as a context manager) to release its listener.
        """
        return FrameIterator(self)

    def next_frame(self, timeout_s: float = 3.0) -> bytes:
        """
        Block until the next frame arrives.

        Raises StreamEndedError if the stream ends first (or is not active),
        FrameTimeout if nothing arrives within `timeout_s`.
        """
        got: Deque[bytes] = deque()
        ended: List[str] = []
        event = threading.Event()

        def _on_frame(frame: bytes) -> None:
            if not got:
                got.append(frame)
            event.set()

        def _on_end(reason: str) -> None:
            ended.append(reason)
            event.set()

        self.subscribe(_on_frame)
        self.on_end(_on_end)
        try:
            if not self._active:
                raise StreamEndedError(
                    "Video stream is not running.",
                    hint="Start the decoder before waiting for frames.",
                    details={"reason": self._end_reason},
                )
            if not event.wait(timeout_s):
                raise FrameTimeout(
                    "Timeout waiting for frame.",
                    details={"timeout_s": timeout_s},
                )
            if got:
                return got[0]
            raise StreamEndedError(
                "Decoder ended before frame arrived.",
                details={"reason": ended[0] if ended else self._end_reason},
            )
        finally:
            self.unsubscribe(_on_frame)
            self.remove_on_end(_on_end)


class FrameIterator:
    """Pull consumer of a FrameAssembler; buffers frames from the moment it is created."""

    def __init__(self, assembler: FrameAssembler):
        self._assembler = assembler
        self._pending: Deque[bytes] = deque()
        self._closed = False
        self._handler: FrameCallback = self._pending.append
        assembler.subscribe(self._handler)

    def __iter__(self) -> "FrameIterator":
        return self

    def __next__(self) -> bytes:
        while True:
            if self._closed:
                raise StopIteration
            if self._pending:
                return self._pending.popleft()
            if not self._assembler.active:
                self.close()
                raise StopIteration
            time.sleep(self._assembler.poll_interval_s)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._assembler.unsubscribe(self._handler)

    def __enter__(self) -> "FrameIterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
