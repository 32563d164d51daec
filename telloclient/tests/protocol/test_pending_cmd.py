from __future__ import annotations

from concurrent.futures import TimeoutError as FutureTimeout

import pytest

from telloclient.protocol._internal.pending_command import PendingCommand
from telloclient.protocol.errors import CommandTimeout
from telloclient.protocol.response import CommandResponse


def test_settles_exactly_once():
    p = PendingCommand("takeoff", timeout_s=1.0, max_retries=3)

    assert p.set_result(CommandResponse(True, "ok")) is True
    assert p.set_result(CommandResponse(False, "error")) is False
    assert p.set_exception(CommandTimeout("takeoff", 1.0, 3)) is False

    assert p.wait(0) == CommandResponse(True, "ok")


def test_exception_is_reraised_by_wait():
    p = PendingCommand("land", timeout_s=1.0, max_retries=1)
    p.set_exception(CommandTimeout("land", 1.0, 1))

    with pytest.raises(CommandTimeout):
        p.wait(0)


def test_cancelled_future_cannot_be_settled():
    p = PendingCommand("cw 90", timeout_s=1.0, max_retries=3)
    assert p.future.cancel() is True

    assert p.cancelled()
    assert p.set_result(CommandResponse(True, "ok")) is False


def test_wait_times_out_when_unsettled():
    p = PendingCommand("streamon", timeout_s=1.0, max_retries=3)
    with pytest.raises(FutureTimeout):
        p.wait(0.01)


def test_payload_and_ids():
    a = PendingCommand("forward 50", timeout_s=1.0, max_retries=3, priority=True)
    b = PendingCommand("emergency", timeout_s=1.0, max_retries=1, emergency=True)

    assert a.payload == b"forward 50"
    assert b.request_id > a.request_id
    assert a.attempts == 0
    assert "P" in repr(a) and "E" in repr(b)


def test_done_callback_fires_on_settle():
    p = PendingCommand("battery?", timeout_s=1.0, max_retries=3)
    seen = []
    p.add_done_callback(lambda fut: seen.append(fut.result().message))

    p.set_result(CommandResponse(True, "87"))

    assert seen == ["87"]
    assert p.done()
