# telloclient/cli/args.py
from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Optional

from telloclient.app.config import TelloConfig
from telloclient.app.loader import load_config


def _positive_float(v: str) -> float:
    try:
        f = float(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{v}'") from None
    if f <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive number, got {v}")
    return f


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="telloctl")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, default=None, help="YAML config (default: packaged tello.yml).")
    common.add_argument("--ip", default=None, help="Drone IP address (overrides config).")
    common.add_argument("--timeout", type=_positive_float, default=None, help="Default command timeout in seconds.")
    common.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    common.add_argument("--trace", type=Path, default=None, help="Write a JSONL command trace to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging on the console.")

    sub.add_parser("status", parents=[common], help="Battery, temperature and latest telemetry.")

    p_send = sub.add_parser("send", parents=[common], help="Send one raw SDK command.")
    p_send.add_argument("text", nargs="+", help="Command text, e.g. 'forward 50'.")
    p_send.add_argument("--priority", action="store_true", help="Insert ahead of queued commands.")

    sub.add_parser("fly-demo", parents=[common], help="Take off, climb, turn around twice, land.")
    sub.add_parser("emergency", parents=[common], help="Stop all motors immediately.")

    p_cap = sub.add_parser("capture", parents=[common], help="Save one video frame as JPEG.")
    p_cap.add_argument("--out", type=Path, required=True)
    p_cap.add_argument("--frame-timeout", type=_positive_float, default=3.0)

    p_rec = sub.add_parser("record", parents=[common], help="Save decoded frames to a directory.")
    p_rec.add_argument("--out-dir", type=Path, required=True)
    p_rec.add_argument("--count", type=int, default=None, help="Stop after N frames.")
    p_rec.add_argument("--secs", type=_positive_float, default=None, help="Stop after this many seconds.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_config(args: argparse.Namespace) -> TelloConfig:
    """Config file first, then CLI overrides."""
    cfg = load_config(args.config)
    overrides = {}
    if args.ip:
        overrides["drone_ip"] = args.ip
    if args.timeout is not None:
        overrides["cmd_timeout_s"] = args.timeout
    return replace(cfg, **overrides) if overrides else cfg
