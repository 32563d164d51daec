from __future__ import annotations

from concurrent.futures import Future

import pytest

from telloclient.app.config import CommandRange, TelloConfig
from telloclient.core.errors import ValidationError
from telloclient.protocol.commands import TelloCommands, validate_range
from telloclient.protocol.errors import CommandRejected, ProtocolError
from telloclient.protocol.response import CommandResponse


class FakeDispatcher:
    def __init__(self, replies: dict[str, str] | None = None):
        self.replies = replies or {}
        self.calls: list[tuple[str, dict]] = []
        self.emergencies = 0

    def send_cmd(self, command: str, **kwargs) -> CommandResponse:
        self.calls.append((command, kwargs))
        text = self.replies.get(command, "ok")
        return CommandResponse(text.lower() != "error", text)

    def emergency(self) -> Future:
        self.emergencies += 1
        fut: Future = Future()
        fut.set_result(CommandResponse(True, "ok"))
        return fut


def make(replies=None, config=None):
    d = FakeDispatcher(replies)
    return TelloCommands(d, config or TelloConfig()), d


def test_sdk_mode_and_takeoff_are_priority():
    cmds, d = make()
    cmds.enter_sdk_mode()
    cmds.takeoff()
    cmds.land()

    assert d.calls[0] == ("command", {"priority": True, "timeout_s": None})
    assert d.calls[1] == ("takeoff", {"priority": True, "timeout_s": 12.0})
    assert d.calls[2] == ("land", {"priority": False, "timeout_s": 12.0})


@pytest.mark.parametrize(
    "method, value, wire",
    [
        ("up", 20, "up 20"),
        ("down", 500, "down 500"),
        ("left", 100, "left 100"),
        ("right", 21, "right 21"),
        ("forward", 50, "forward 50"),
        ("back", 499, "back 499"),
        ("cw", 1, "cw 1"),
        ("ccw", 3600, "ccw 3600"),
    ],
)
def test_movement_wire_format(method, value, wire):
    cmds, d = make()
    resp = getattr(cmds, method)(value)

    assert resp.success
    assert d.calls[-1][0] == wire


@pytest.mark.parametrize(
    "method, value",
    [("up", 19), ("down", 501), ("forward", 0), ("cw", 0), ("ccw", 3601), ("left", 50.5), ("back", True)],
)
def test_out_of_range_never_reaches_dispatcher(method, value):
    cmds, d = make()
    with pytest.raises(ValidationError):
        getattr(cmds, method)(value)
    assert d.calls == []


def test_range_message_names_bounds():
    with pytest.raises(ValidationError) as ei:
        validate_range("up", 10, CommandRange(20, 500))
    assert "between 20 and 500" in ei.value.message
    assert ei.value.details["value"] == 10


def test_ranges_come_from_config():
    cfg = TelloConfig(ranges={"up": CommandRange(30, 40)})
    cmds, d = make(config=cfg)

    with pytest.raises(ValidationError):
        cmds.up(20)
    cmds.up(35)
    # no bounds configured for "down": passed through as-is
    cmds.down(5)
    assert [c for c, _ in d.calls] == ["up 35", "down 5"]


def test_error_reply_is_returned_not_raised():
    cmds, _ = make({"takeoff": "error"})
    resp = cmds.takeoff()
    assert resp == CommandResponse(False, "error")

    with pytest.raises(CommandRejected):
        TelloCommands.require_ok(resp, "takeoff")


def test_set_wifi_validates_and_uses_its_timeout():
    cmds, d = make()
    cmds.set_wifi("my_net", "secret123")
    assert d.calls[-1] == ("wifi my_net secret123", {"timeout_s": 10.0})

    for ssid, pwd in (("", "x"), ("a b", "x"), ("net", ""), ("net", "p w")):
        with pytest.raises(ValidationError):
            cmds.set_wifi(ssid, pwd)
    assert len(d.calls) == 1


def test_emergency_returns_future_from_dispatcher():
    cmds, d = make()
    fut = cmds.emergency()
    assert fut.result(0).success
    assert d.emergencies == 1


def test_query_battery():
    cmds, _ = make({"battery?": "87\r\n"})
    assert cmds.query_battery() == 87


@pytest.mark.parametrize("reply, expected", [("62~64C", 62), ("55C", 55), ("70", 70)])
def test_query_temperature_takes_lower_bound(reply, expected):
    cmds, _ = make({"temp?": reply})
    assert cmds.query_temperature() == expected


@pytest.mark.parametrize("cmd, method", [("battery?", "query_battery"), ("temp?", "query_temperature")])
def test_queries_raise_on_unparseable_reply(cmd, method):
    cmds, _ = make({cmd: "error"})
    with pytest.raises(ProtocolError):
        getattr(cmds, method)()
