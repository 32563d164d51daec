# telloclient/app/loader.py
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from telloclient.core.errors import ConfigError
from .config import CommandRange, TelloConfig

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "metadata" / "tello.yml"

# section -> yaml key -> (TelloConfig field, schema type)
_SCALARS: Dict[str, Dict[str, tuple]] = {
    "network": {
        "drone_ip": ("drone_ip", "str"),
        "cmd_port": ("cmd_port", "int"),
        "state_port": ("state_port", "int"),
        "video_port": ("video_port", "int"),
        "bind_host": ("bind_host", "str"),
        "socket_timeout_s": ("socket_timeout_s", "float"),
    },
    "commands": {
        "timeout_s": ("cmd_timeout_s", "float"),
        "max_retries": ("max_retries", "int"),
        "retry_backoff_s": ("retry_backoff_s", "float"),
    },
    "video": {
        "ffmpeg_path": ("ffmpeg_path", "str"),
        "udp_fifo_size": ("udp_fifo_size", "int"),
        "max_frame_buffer": ("max_frame_buffer", "int"),
        "frame_poll_interval_s": ("frame_poll_interval_s", "float"),
    },
}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(
            f"Missing config file: {path}",
            hint="Pass --config with an existing YAML file or omit it to use the defaults.",
            details={"path": str(path)},
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Config file is not valid YAML: {path}",
            hint=str(e),
            details={"path": str(path)},
        ) from None
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config root must be a mapping: {path}",
            details={"path": str(path), "type": type(data).__name__},
        )
    return data


def _cast(value: Any, type_name: str) -> Any:
    if type_name == "str":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return float(value)

    raise TypeError(f"Unknown schema type '{type_name}'")


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping.", details={"section": name})
    return section


def _parse_ranges(raw: Any) -> Dict[str, CommandRange]:
    if not isinstance(raw, dict):
        raise TypeError("ranges must be a mapping of command -> {min, max}")
    out: Dict[str, CommandRange] = {}
    for name, bounds in raw.items():
        if not isinstance(bounds, dict) or "min" not in bounds or "max" not in bounds:
            raise TypeError(f"range '{name}' must have min and max")
        lo, hi = _cast(bounds["min"], "int"), _cast(bounds["max"], "int")
        if lo > hi:
            raise ValueError(f"range '{name}' has min > max ({lo} > {hi})")
        out[str(name)] = CommandRange(lo, hi)
    return out


def _parse_timeouts(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, dict):
        raise TypeError("timeouts must be a mapping of command -> seconds")
    out = {str(name): _cast(value, "float") for name, value in raw.items()}
    for name, value in out.items():
        if value <= 0:
            raise ValueError(f"timeout for '{name}' must be > 0")
    return out


def config_from_dict(data: Mapping[str, Any], *, base: Optional[TelloConfig] = None) -> TelloConfig:
    """Overlay a parsed YAML mapping on `base` (defaults when omitted)."""
    cfg = base or TelloConfig()
    updates: Dict[str, Any] = {}

    for section_name, keys in _SCALARS.items():
        section = _section(data, section_name)
        for key, (field_name, type_name) in keys.items():
            if key not in section:
                continue
            try:
                updates[field_name] = _cast(section[key], type_name)
            except TypeError as e:
                raise ConfigError(
                    f"Invalid value for '{section_name}.{key}'.",
                    hint=str(e),
                    details={"section": section_name, "key": key, "value": section[key]},
                ) from None

    commands = _section(data, "commands")
    video = _section(data, "video")
    try:
        if "ranges" in commands:
            merged = dict(cfg.ranges)
            merged.update(_parse_ranges(commands["ranges"]))
            updates["ranges"] = merged
        if "timeouts" in commands:
            merged_t = dict(cfg.command_timeouts)
            merged_t.update(_parse_timeouts(commands["timeouts"]))
            updates["command_timeouts"] = merged_t
        if "ffmpeg_args" in video:
            args = video["ffmpeg_args"]
            if not isinstance(args, list):
                raise TypeError("ffmpeg_args must be a list")
            updates["ffmpeg_args"] = tuple(str(a) for a in args)
    except (TypeError, ValueError) as e:
        raise ConfigError("Invalid command/video settings.", hint=str(e)) from None

    cfg = replace(cfg, **updates)

    if cfg.max_retries < 1:
        raise ConfigError("commands.max_retries must be >= 1.", details={"value": cfg.max_retries})
    if cfg.cmd_timeout_s <= 0 or cfg.retry_backoff_s < 0:
        raise ConfigError(
            "commands.timeout_s must be > 0 and retry_backoff_s >= 0.",
            details={"timeout_s": cfg.cmd_timeout_s, "retry_backoff_s": cfg.retry_backoff_s},
        )
    if cfg.max_frame_buffer <= 0:
        raise ConfigError("video.max_frame_buffer must be > 0.", details={"value": cfg.max_frame_buffer})

    return cfg


def load_config(path: str | Path | None = None) -> TelloConfig:
    """Load TelloConfig from YAML (packaged defaults when `path` is None)."""
    cfg_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    return config_from_dict(_load_yaml(cfg_path))
