from __future__ import annotations

from pathlib import Path

import pytest

from telloclient.app.config import CommandRange, TelloConfig
from telloclient.app.loader import DEFAULT_CONFIG_PATH, config_from_dict, load_config
from telloclient.core.errors import ConfigError


def write_yaml(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "tello.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_packaged_defaults_match_dataclass_defaults():
    assert DEFAULT_CONFIG_PATH.exists()
    assert load_config() == TelloConfig()


def test_partial_file_overlays_defaults(tmp_path):
    p = write_yaml(
        tmp_path,
        """
network:
  drone_ip: 192.168.10.2
commands:
  timeout_s: 2
  timeouts:
    takeoff: 20
  ranges:
    up: {min: 30, max: 100}
""",
    )
    cfg = load_config(p)

    assert cfg.drone_ip == "192.168.10.2"
    assert cfg.cmd_port == 8889
    assert cfg.cmd_timeout_s == 2.0
    assert cfg.timeout_for("takeoff") == 20.0
    assert cfg.timeout_for("land") == 12.0
    assert cfg.timeout_for("battery?") == 2.0
    assert cfg.ranges["up"] == CommandRange(30, 100)
    assert cfg.ranges["down"] == CommandRange(20, 500)


def test_empty_file_gives_defaults(tmp_path):
    assert load_config(write_yaml(tmp_path, "")) == TelloConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(tmp_path / "nope.yml")
    assert ei.value.hint


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="not valid YAML"):
        load_config(write_yaml(tmp_path, "network: [unclosed"))


def test_root_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError, match="mapping"):
        load_config(write_yaml(tmp_path, "- a\n- b\n"))


@pytest.mark.parametrize(
    "data",
    [
        {"network": {"cmd_port": "8889"}},
        {"network": {"drone_ip": 1}},
        {"commands": {"max_retries": 2.5}},
        {"commands": {"max_retries": True}},
        {"commands": {"max_retries": 0}},
        {"commands": {"timeout_s": 0}},
        {"commands": {"retry_backoff_s": -1}},
        {"commands": {"ranges": {"up": {"min": 100, "max": 20}}}},
        {"commands": {"ranges": {"up": {"min": 20}}}},
        {"commands": {"timeouts": {"takeoff": -5}}},
        {"video": {"ffmpeg_args": "-y"}},
        {"video": {"max_frame_buffer": 0}},
        {"network": "oops"},
    ],
)
def test_invalid_values_raise_config_error(data):
    with pytest.raises(ConfigError):
        config_from_dict(data)


def test_ffmpeg_args_are_stringified():
    cfg = config_from_dict({"video": {"ffmpeg_args": ["-probesize", 32]}})
    assert cfg.ffmpeg_args == ("-probesize", "32")


def test_video_url_uses_port_and_fifo():
    cfg = config_from_dict({"network": {"video_port": 11112}, "video": {"udp_fifo_size": 1000}})
    assert cfg.video_url == "udp://0.0.0.0:11112?overrun_nonfatal=1&fifo_size=1000"
