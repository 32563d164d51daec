from __future__ import annotations

import pytest

from telloclient.transport.base import Transport
from telloclient.transport.errors import TransportError
from telloclient.transport.registry import TransportDriverRegistry
from telloclient.transport.udp import UDPTransport


class LoopbackTransport(Transport):
    def __init__(self, **params):
        self.params = params

    def open(self) -> None: ...
    def close(self) -> None: ...
    def read(self, n: int) -> bytes:
        return b""
    def write(self, data: bytes) -> int:
        return len(data)


def test_default_registry_has_udp():
    reg = TransportDriverRegistry.default()
    assert reg.has("udp")
    assert reg.has("UDP")
    assert reg.get_class("udp") is UDPTransport


def test_create_passes_params():
    reg = TransportDriverRegistry.default()
    t = reg.create("udp", local_port=8889, peer_host="192.168.10.1", peer_port=8889)
    assert isinstance(t, UDPTransport)
    assert t.peer == ("192.168.10.1", 8889)
    assert not t.is_open()


def test_custom_driver():
    reg = TransportDriverRegistry({"Loop": LoopbackTransport})
    t = reg.create("loop", local_port=1)
    assert isinstance(t, LoopbackTransport)
    assert t.params == {"local_port": 1}


def test_unknown_driver_raises():
    with pytest.raises(TransportError, match="not registered .known: udp"):
        TransportDriverRegistry.default().get_class("serial")


def test_register_overrides_udp():
    reg = TransportDriverRegistry.default()
    reg.register("UDP", LoopbackTransport)

    t = reg.create("udp", local_port=8889)
    assert isinstance(t, LoopbackTransport)
    assert reg.drivers == ["udp"]


def test_bad_params_raise_transport_error():
    reg = TransportDriverRegistry.default()
    with pytest.raises(TransportError, match="Bad parameters"):
        reg.create("udp", port=8889)
