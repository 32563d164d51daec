from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract datagram transport.

    Contract:
      - open()/close() manage the underlying socket.
      - read(n) returns one datagram of at most n bytes, or b"" when nothing
        arrived before the receive timeout.
      - write(data) sends one datagram to the fixed peer and returns the
        number of bytes sent.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
