# telloclient/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Socket-level failure on a drone link (command, state or video port)."""


class TransportOpenError(TransportError):
    """Local port could not be bound (in use, permission denied, bad address)."""


class TransportIOError(TransportError):
    """sendto/recvfrom failed, or I/O on a closed or receive-only socket."""
