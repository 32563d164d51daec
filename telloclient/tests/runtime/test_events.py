from __future__ import annotations

import logging

from telloclient.runtime.events import EventBus


def test_emit_in_registration_order():
    bus = EventBus()
    seen = []
    bus.on("state", lambda s: seen.append(("a", s)))
    bus.on("state", lambda s: seen.append(("b", s)))

    assert bus.emit("state", 1) == 2
    assert seen == [("a", 1), ("b", 1)]


def test_once_fires_a_single_time():
    bus = EventBus()
    seen = []
    bus.once("frame", seen.append)

    bus.emit("frame", b"1")
    bus.emit("frame", b"2")

    assert seen == [b"1"]
    assert bus.listener_count("frame") == 0


def test_off_and_clear():
    bus = EventBus()
    seen = []
    cb = bus.on("response", seen.append)
    bus.on("state", seen.append)

    bus.off("response", cb)
    bus.off("response", cb)
    assert bus.emit("response", "ok") == 0

    bus.clear("state")
    assert bus.listener_count("state") == 0

    bus.on("a", seen.append)
    bus.on("b", seen.append)
    bus.clear()
    assert bus.emit("a", 1) == 0 and bus.emit("b", 1) == 0
    assert seen == []


def test_failing_listener_is_logged_and_isolated(caplog):
    bus = EventBus(logger=logging.getLogger("test"))
    seen = []

    def bad(_):
        raise ValueError("nope")

    bus.on("state", bad)
    bus.on("state", seen.append)

    with caplog.at_level(logging.ERROR, logger="test"):
        assert bus.emit("state", "s") == 2

    assert seen == ["s"]
    assert "EVENT_LISTENER_ERROR kind=state" in caplog.text


def test_listener_may_unsubscribe_during_emit():
    bus = EventBus()
    seen = []

    def self_removing(x):
        seen.append(x)
        bus.off("k", self_removing)

    bus.on("k", self_removing)
    bus.on("k", seen.append)
    bus.emit("k", 1)
    bus.emit("k", 2)

    assert seen == [1, 1, 2]
