from __future__ import annotations

import json
import logging

from telloclient.interfaces.command_sink import CommandEvent
from telloclient.recording.command_trace import CommandTraceLogger


def test_writes_jsonl_and_debug_log(tmp_path, caplog):
    path = tmp_path / "trace" / "commands.jsonl"
    sink = CommandTraceLogger(logger=logging.getLogger("test"), file_path=path)

    with caplog.at_level(logging.DEBUG, logger="test"):
        sink.on_command(CommandEvent(name="takeoff", kind="send", request_id="1", payload={"attempt": 1}))
        sink.on_command(CommandEvent(name="takeoff", kind="ok", request_id="1", ts_utc="2024-01-01T00:00:00+00:00"))
    sink.close()

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["kind"] for r in lines] == ["send", "ok"]
    assert lines[0]["payload"] == {"attempt": 1}
    assert "ts_utc" in lines[0]
    assert "payload" not in lines[1]
    assert lines[1]["ts_utc"] == "2024-01-01T00:00:00+00:00"
    assert "CMD_TRACE send takeoff id=1" in caplog.text


def test_without_file_only_logs(caplog):
    sink = CommandTraceLogger(logger=logging.getLogger("test"))
    with caplog.at_level(logging.DEBUG, logger="test"):
        sink.on_command(CommandEvent(name="land", kind="timeout"))
    sink.close()
    sink.close()
    assert "CMD_TRACE timeout land" in caplog.text


def test_events_after_close_are_not_written(tmp_path):
    path = tmp_path / "c.jsonl"
    sink = CommandTraceLogger(logger=logging.getLogger("test"), file_path=path)
    sink.close()
    sink.on_command(CommandEvent(name="land", kind="ok"))
    assert path.read_text(encoding="utf-8") == ""
