# telloclient/protocol/commands.py
from __future__ import annotations

from concurrent.futures import Future
from typing import Mapping, Optional

from telloclient.app.config import CommandRange, TelloConfig
from telloclient.core.errors import ValidationError

from .engine import CommandDispatcher
from .errors import CommandRejected, ProtocolError
from .response import CommandResponse


def validate_range(command: str, value: int, bounds: CommandRange) -> None:
    """Reject non-integers and out-of-range values before anything is queued."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"The parameter {command} must be an integer.",
            details={"command": command, "value": value},
        )
    if not bounds.contains(value):
        raise ValidationError(
            f"The value of {command} must be between {bounds.min} and {bounds.max}. (Current: {value})",
            details={"command": command, "value": value, "min": bounds.min, "max": bounds.max},
        )


class TelloCommands:
    """
    User-facing Tello SDK commands over CommandDispatcher.

    Blocking methods return the CommandResponse, which may be a non-success
    reply ("error"); timeouts and transport failures raise. Callers must
    handle both.
    """

    def __init__(self, dispatcher: CommandDispatcher, config: Optional[TelloConfig] = None):
        self._dispatcher = dispatcher
        self._config = config or TelloConfig()

    @property
    def ranges(self) -> Mapping[str, CommandRange]:
        return self._config.ranges

    @staticmethod
    def require_ok(resp: CommandResponse, cmd: str) -> CommandResponse:
        if not resp.success:
            raise CommandRejected(cmd, resp.message)
        return resp

    def _send(self, cmd: str, *, priority: bool = False, timeout_key: Optional[str] = None) -> CommandResponse:
        timeout_s = self._config.timeout_for(timeout_key) if timeout_key else None
        return self._dispatcher.send_cmd(cmd, priority=priority, timeout_s=timeout_s)

    def _ranged(self, name: str, value: int) -> CommandResponse:
        bounds = self._config.ranges.get(name)
        if bounds is not None:
            validate_range(name, value, bounds)
        return self._send(f"{name} {value}")

    # ---------------- Control ----------------
    def enter_sdk_mode(self) -> CommandResponse:
        return self._send("command", priority=True)

    def takeoff(self) -> CommandResponse:
        return self._send("takeoff", priority=True, timeout_key="takeoff")

    def land(self) -> CommandResponse:
        return self._send("land", timeout_key="land")

    def emergency(self) -> Future:
        return self._dispatcher.emergency()

    def streamon(self) -> CommandResponse:
        return self._send("streamon")

    def streamoff(self) -> CommandResponse:
        return self._send("streamoff")

    def set_wifi(self, ssid: str, password: str) -> CommandResponse:
        if not ssid or " " in ssid or not password or " " in password:
            raise ValidationError(
                "Wi-Fi SSID and password must be non-empty and contain no spaces.",
                details={"ssid": ssid},
            )
        return self._dispatcher.send_cmd(
            f"wifi {ssid} {password}", timeout_s=self._config.timeout_for("wifi")
        )

    # ---------------- Movement ----------------
    def up(self, distance: int) -> CommandResponse:
        return self._ranged("up", distance)

    def down(self, distance: int) -> CommandResponse:
        return self._ranged("down", distance)

    def left(self, distance: int) -> CommandResponse:
        return self._ranged("left", distance)

    def right(self, distance: int) -> CommandResponse:
        return self._ranged("right", distance)

    def forward(self, distance: int) -> CommandResponse:
        return self._ranged("forward", distance)

    def back(self, distance: int) -> CommandResponse:
        return self._ranged("back", distance)

    def cw(self, degrees: int) -> CommandResponse:
        return self._ranged("cw", degrees)

    def ccw(self, degrees: int) -> CommandResponse:
        return self._ranged("ccw", degrees)

    # ---------------- Queries ----------------
    def _query_int(self, cmd: str, what: str) -> int:
        resp = self._send(cmd)
        try:
            return int(resp.message.strip().split()[0])
        except (ValueError, IndexError):
            raise ProtocolError(f"Invalid {what}: {resp.message!r}") from None

    def query_battery(self) -> int:
        return self._query_int("battery?", "battery level")

    def query_temperature(self) -> int:
        # SDK replies with a range such as "62~64C"; keep the lower bound
        resp = self._send("temp?")
        text = resp.message.strip()
        head = text.split("~", 1)[0].rstrip("Cc ").strip()
        try:
            return int(head)
        except ValueError:
            raise ProtocolError(f"Invalid temperature: {resp.message!r}") from None
