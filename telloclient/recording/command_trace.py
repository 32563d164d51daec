# telloclient/recording/command_trace.py
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Optional

from telloclient.interfaces.command_sink import CommandEvent, CommandSink


@dataclass
class CommandTraceLogger(CommandSink):
    """
    CommandSink writing one JSON object per line, and a DEBUG log record per
    event. Settle events arrive on the dispatch thread, so writes are locked.
    """
    logger: logging.Logger
    file_path: Optional[Path] = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._fh: Optional[IO[str]] = None
        if self.file_path is not None:
            self.file_path = Path(self.file_path)
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.file_path, "a", encoding="utf-8")

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None

    def on_command(self, event: CommandEvent) -> None:
        ts_utc = event.ts_utc or datetime.now(timezone.utc).isoformat()

        out = {
            "name": event.name,
            "kind": event.kind,
            "request_id": event.request_id,
            "payload": event.payload,
            "ts_utc": ts_utc,
        }
        out = {k: v for k, v in out.items() if v is not None}

        self.logger.debug("CMD_TRACE %s %s id=%s", event.kind, event.name, event.request_id)

        with self._lock:
            if self._fh is None:
                return
            self._fh.write(json.dumps(out, ensure_ascii=False, default=str) + "\n")
            self._fh.flush()
