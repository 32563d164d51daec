from __future__ import annotations

import pytest

from telloclient.protocol.response import CommandResponse, decode_reply, is_printable_reply


@pytest.mark.parametrize(
    "raw, expected",
    [
        (b"ok", CommandResponse(True, "ok")),
        (b"ok\r\n", CommandResponse(True, "ok")),
        (b"error", CommandResponse(False, "error")),
        (b"Error", CommandResponse(False, "Error")),
        (b" ERROR \r\n", CommandResponse(False, "ERROR")),
        (b"87", CommandResponse(True, "87")),
        (b"62~64C", CommandResponse(True, "62~64C")),
        (b"error Not joystick", CommandResponse(True, "error Not joystick")),
    ],
)
def test_decode_reply_classifies(raw, expected):
    assert decode_reply(raw) == expected


@pytest.mark.parametrize("raw", [b"", b"   ", b"\r\n", b"\xcc\x18\x01", b"ok\x00", "héllo".encode()])
def test_decode_reply_rejects_non_printable(raw):
    assert decode_reply(raw) is None


def test_is_printable_reply_trims_whitespace():
    assert is_printable_reply(b"  ok\n")
    assert not is_printable_reply(b"ok\x7f")


def test_as_dict():
    assert CommandResponse(False, "error").as_dict() == {"success": False, "message": "error"}
