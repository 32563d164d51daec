from .base import Transport
from .udp import UDPTransport
from .registry import TransportDriverRegistry
from .errors import TransportError, TransportOpenError, TransportIOError

__all__ = [
    "Transport",
    "UDPTransport",
    "TransportDriverRegistry",
    "TransportError", "TransportOpenError", "TransportIOError",
]
