# telloclient/interfaces/command_sink.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


@dataclass(frozen=True, slots=True)
class CommandEvent:
    """
    Command trace event (for recording/debugging).
    """
    name: str                   # command text, e.g. "forward 50"
    kind: str                   # "send" | "ok" | "rejected" | "timeout" | "send_failed" | "superseded" | "disconnected" | "error"
    payload: Optional[Mapping[str, Any]] = None
    request_id: Optional[str] = None
    ts_utc: Optional[str] = None


class CommandSink(Protocol):
    def on_command(self, event: CommandEvent) -> None: ...
    def close(self) -> None: ...
