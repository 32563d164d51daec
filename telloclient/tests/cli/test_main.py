from __future__ import annotations

import pytest

import telloclient.cli.commands as commands_mod
import telloclient.cli.main as main_mod
from telloclient.cli.args import build_config, parse_args
from telloclient.protocol.errors import CommandTimeout
from telloclient.protocol.response import CommandResponse


class FakeClient:
    instances: list["FakeClient"] = []

    def __init__(self, config, *, cmd_sink=None):
        self.config = config
        self.cmd_sink = cmd_sink
        self.sent: list[tuple[str, bool]] = []
        self.connected = False
        self.disconnected = False
        self.reply = CommandResponse(True, "ok")
        FakeClient.instances.append(self)

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.disconnected = True

    def send_command(self, text, priority=False):
        self.sent.append((text, priority))
        return self.reply

    def emergency(self):
        return CommandResponse(True, "ok")


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    FakeClient.instances = []
    monkeypatch.setattr(main_mod, "configure_logging", lambda **kw: None)
    monkeypatch.setattr(commands_mod, "TelloClient", FakeClient)


def test_build_config_applies_overrides():
    cfg = build_config(parse_args(["status", "--ip", "10.0.0.5", "--timeout", "2.5"]))
    assert cfg.drone_ip == "10.0.0.5"
    assert cfg.cmd_timeout_s == 2.5
    assert cfg.cmd_port == 8889


def test_non_positive_timeout_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["status", "--timeout", "0"])


def test_send_joins_words_and_reports(capsys):
    assert main_mod.main(["send", "forward", "50", "--priority"]) == 0

    client = FakeClient.instances[0]
    assert client.sent == [("forward 50", True)]
    assert client.connected and client.disconnected
    assert "forward 50" in capsys.readouterr().out


def test_send_rejected_reply_exits_nonzero(monkeypatch):
    monkeypatch.setattr(
        FakeClient, "send_command", lambda self, text, priority=False: CommandResponse(False, "error")
    )
    assert main_mod.main(["send", "takeoff"]) == 1


def test_protocol_error_prints_and_exits_one(monkeypatch, capsys):
    def _timeout(self, text, priority=False):
        raise CommandTimeout(text, 5.0, 3)

    monkeypatch.setattr(FakeClient, "send_command", _timeout)

    assert main_mod.main(["send", "land"]) == 1
    assert "ERROR: land timed out" in capsys.readouterr().out
    assert FakeClient.instances[0].disconnected


def test_config_error_prints_hint(tmp_path, capsys):
    assert main_mod.main(["status", "--config", str(tmp_path / "missing.yml")]) == 1

    out = capsys.readouterr().out
    assert "ERROR: Missing config file" in out
    assert "Hint:" in out
    assert FakeClient.instances == []


def test_trace_flag_attaches_sink(tmp_path):
    trace = tmp_path / "trace.jsonl"
    assert main_mod.main(["emergency", "--trace", str(trace)]) == 0

    sink = FakeClient.instances[0].cmd_sink
    assert sink is not None
    assert trace.exists()
