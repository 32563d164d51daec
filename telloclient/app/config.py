# telloclient/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class CommandRange:
    """Inclusive integer bounds for a command argument (cm or degrees)."""
    min: int
    max: int

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


def _default_ranges() -> Dict[str, CommandRange]:
    moves = {name: CommandRange(20, 500) for name in ("up", "down", "left", "right", "forward", "back")}
    turns = {name: CommandRange(1, 3600) for name in ("cw", "ccw")}
    return {**moves, **turns}


def _default_command_timeouts() -> Dict[str, float]:
    return {"takeoff": 12.0, "land": 12.0, "wifi": 10.0}


def _default_ffmpeg_args() -> Tuple[str, ...]:
    return (
        "-fflags", "nobuffer",
        "-flags", "low_delay",
        "-probesize", "5000000",
        "-analyzeduration", "10000000",
        "-threads", "1",
    )


@dataclass(frozen=True)
class TelloConfig:
    # network
    drone_ip: str = "192.168.10.1"
    cmd_port: int = 8889
    state_port: int = 8890
    video_port: int = 11111
    bind_host: str = ""
    socket_timeout_s: float = 0.05

    # command dispatch
    cmd_timeout_s: float = 5.0
    max_retries: int = 3
    retry_backoff_s: float = 0.4
    command_timeouts: Dict[str, float] = field(default_factory=_default_command_timeouts)
    ranges: Dict[str, CommandRange] = field(default_factory=_default_ranges)

    # video
    ffmpeg_path: str = "ffmpeg"
    ffmpeg_args: Tuple[str, ...] = field(default_factory=_default_ffmpeg_args)
    udp_fifo_size: int = 50_000_000
    max_frame_buffer: int = 5_000_000
    frame_poll_interval_s: float = 0.02

    def timeout_for(self, command: str) -> float:
        return float(self.command_timeouts.get(command, self.cmd_timeout_s))

    @property
    def video_url(self) -> str:
        return f"udp://0.0.0.0:{self.video_port}?overrun_nonfatal=1&fifo_size={self.udp_fifo_size}"
