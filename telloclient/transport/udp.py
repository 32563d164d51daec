# telloclient/transport/udp.py
from __future__ import annotations

import socket
from typing import Optional, Tuple

from .base import Transport
from .errors import TransportIOError, TransportOpenError


class UDPTransport(Transport):
    """
    UDP transport bound to a local port, talking to one fixed peer.

    read(n) waits at most `timeout` seconds for a datagram and returns b"" when
    none arrived. A transport built without a peer is receive-only (state
    broadcasts); write() on it raises TransportIOError.
    """

    def __init__(
        self,
        local_port: int,
        peer_host: Optional[str] = None,
        peer_port: Optional[int] = None,
        *,
        bind_host: str = "",
        timeout: float = 0.05,
        reuse_addr: bool = True,
    ):
        self.local_port = int(local_port)
        self.peer_host = peer_host
        self.peer_port = int(peer_port) if peer_port is not None else None
        self.bind_host = bind_host
        self.timeout = float(timeout)
        self.reuse_addr = reuse_addr
        self.sock: Optional[socket.socket] = None

    @property
    def peer(self) -> Optional[Tuple[str, int]]:
        if self.peer_host is None or self.peer_port is None:
            return None
        return (self.peer_host, self.peer_port)

    def open(self) -> None:
        if self.sock is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            if self.reuse_addr:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.bind_host, self.local_port))
            sock.settimeout(self.timeout)
        except OSError as e:
            sock.close()
            raise TransportOpenError(
                f"UDP bind {self.bind_host or '*'}:{self.local_port} failed: {e}"
            ) from None
        self.sock = sock

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            finally:
                self.sock = None

    def is_open(self) -> bool:
        return self.sock is not None

    def read(self, n: int) -> bytes:
        if self.sock is None:
            raise TransportIOError("read while transport not open")

        try:
            data, _addr = self.sock.recvfrom(n)
            return data
        except socket.timeout:
            return b""
        except OSError as e:
            raise TransportIOError(f"UDP read failed: {e}") from None

    def write(self, data: bytes) -> int:
        if self.sock is None:
            raise TransportIOError("write while transport not open")
        peer = self.peer
        if peer is None:
            raise TransportIOError("write on receive-only transport (no peer)")

        try:
            return self.sock.sendto(data, peer)
        except OSError as e:
            raise TransportIOError(f"UDP write to {peer[0]}:{peer[1]} failed: {e}") from None
