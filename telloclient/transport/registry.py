# telloclient/transport/registry.py
from __future__ import annotations

from typing import Dict, List, Type

from .base import Transport
from .errors import TransportError
from .udp import UDPTransport


class TransportDriverRegistry:
    """
    Driver key -> transport class.

    DroneLink builds its command and state sockets through this registry, so a
    simulator or test double can stand in for UDP by registering under "udp".
    """

    def __init__(self, drivers: Dict[str, Type[Transport]]):
        self._drivers: Dict[str, Type[Transport]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "TransportDriverRegistry":
        return cls(drivers={"udp": UDPTransport})

    @property
    def drivers(self) -> List[str]:
        return sorted(self._drivers)

    def register(self, driver: str, transport_cls: Type[Transport]) -> None:
        self._drivers[driver.lower()] = transport_cls

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def get_class(self, driver: str) -> Type[Transport]:
        try:
            return self._drivers[driver.lower()]
        except KeyError:
            raise TransportError(
                f"Transport driver '{driver}' not registered (known: {', '.join(self.drivers) or 'none'})"
            ) from None

    def create(self, driver: str, **params) -> Transport:
        transport_cls = self.get_class(driver)
        try:
            return transport_cls(**params)
        except (TypeError, ValueError) as e:
            raise TransportError(f"Bad parameters for '{driver}' transport: {e}") from None
