# protocol/__init__.py

from .response import CommandResponse, decode_reply
from .engine import CommandDispatcher, DispatchState
from .commands import TelloCommands, validate_range
from .errors import (
    ProtocolError,
    CommandTimeout,
    CommandRejected,
    SendFailed,
    CommandSuperseded,
    DisconnectedError,
)

__all__ = [
    "CommandResponse", "decode_reply",
    "CommandDispatcher", "DispatchState",
    "TelloCommands", "validate_range",
    "ProtocolError", "CommandTimeout", "CommandRejected",
    "SendFailed", "CommandSuperseded", "DisconnectedError",
]
