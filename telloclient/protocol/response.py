# telloclient/protocol/response.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

ERROR_TOKEN = "error"

_PRINTABLE_ASCII = re.compile(rb"^[\x20-\x7E]+$")


@dataclass(frozen=True)
class CommandResponse:
    """One reply from the drone, correlated to the outstanding command."""
    success: bool
    message: str

    def as_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


def is_printable_reply(data: bytes) -> bool:
    """True when the trimmed datagram is non-empty printable ASCII."""
    return bool(_PRINTABLE_ASCII.match(data.strip()))


def decode_reply(data: bytes) -> Optional[CommandResponse]:
    """
    Classify a raw reply datagram.

    Returns None for datagrams that are not printable ASCII; those are radio
    noise and never settle a command. Otherwise the trimmed text is a success
    unless it is (case-insensitively) the error token.
    """
    if not data or not is_printable_reply(data):
        return None

    text = data.decode("ascii").strip()
    ok = text.lower() != ERROR_TOKEN and len(text) > 0
    return CommandResponse(success=ok, message=text)
