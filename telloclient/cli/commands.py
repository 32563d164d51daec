# telloclient/cli/commands.py
from __future__ import annotations

import argparse
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from telloclient.cli.args import build_config
from telloclient.protocol.response import CommandResponse
from telloclient.recording.command_trace import CommandTraceLogger
from telloclient.runtime.client import TelloClient

# ---------------- Logging ----------------

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(*, verbose: bool = False) -> None:
    """Console handler on the root logger (idempotent)."""
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.WARNING

    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            h.setLevel(level)
            break
    else:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(sh)

    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)

# ---------------- Helpers ----------------

def print_response(label: str, resp: CommandResponse) -> None:
    status = "ok" if resp.success else "FAILED"
    print(f"{label:<12} {status:<7} {resp.message}")


@contextmanager
def connected_client(args: argparse.Namespace) -> Iterator[TelloClient]:
    cfg = build_config(args)
    sink: Optional[CommandTraceLogger] = None
    if args.trace:
        sink = CommandTraceLogger(logger=logging.getLogger("commands"), file_path=args.trace)

    client = TelloClient(cfg, cmd_sink=sink)
    try:
        client.connect()
        yield client
    finally:
        client.disconnect()
        if sink is not None:
            sink.close()

# ---------------- Commands ----------------

def cmd_status(args: argparse.Namespace) -> int:
    with connected_client(args) as tello:
        battery = tello.query_battery()
        temp = tello.query_temperature()

        # telemetry arrives on its own cadence; give it a moment
        deadline = time.monotonic() + 1.0
        while tello.get_state() is None and time.monotonic() < deadline:
            time.sleep(0.05)

        print(f"Drone:       {tello.config.drone_ip}")
        print(f"Battery:     {battery}%")
        print(f"Temperature: {temp}C")
        state = tello.get_state()
        if state is None:
            print("Telemetry:   (none received)")
        else:
            print(f"Telemetry:   flying={tello.is_flying()} height={state.h} tof={state.tof} time={state.time}")
    return 0


def cmd_send(args: argparse.Namespace) -> int:
    text = " ".join(args.text)
    with connected_client(args) as tello:
        resp = tello.send_command(text, priority=args.priority)
        print_response(text, resp)
        return 0 if resp.success else 1


def cmd_fly_demo(args: argparse.Namespace) -> int:
    with connected_client(args) as tello:
        print(f"Battery level: {tello.query_battery()}%")
        steps = (
            ("takeoff", tello.takeoff),
            ("up 20", lambda: tello.up(20)),
            ("cw 180", lambda: tello.cw(180)),
            ("ccw 180", lambda: tello.ccw(180)),
            ("down 20", lambda: tello.down(20)),
        )
        try:
            for label, step in steps:
                resp = step()
                print_response(label, resp)
                if not resp.success:
                    break
        finally:
            print_response("land", tello.land())
    return 0


def cmd_emergency(args: argparse.Namespace) -> int:
    with connected_client(args) as tello:
        resp = tello.emergency()
        print_response("emergency", resp)
        return 0 if resp.success else 1


def cmd_capture(args: argparse.Namespace) -> int:
    with connected_client(args) as tello:
        frame = tello.capture_frame(timeout_s=args.frame_timeout)
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_bytes(frame)
        print(f"Saved {len(frame)} bytes to {args.out}")
        tello.stop_video()
    return 0


def cmd_record(args: argparse.Namespace) -> int:
    out_dir: Path = args.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    with connected_client(args) as tello:
        tello.start_decoder()
        t0 = time.monotonic()
        n = 0
        try:
            with tello.stream_frames() as frames:
                for frame in frames:
                    (out_dir / f"frame_{n:05d}.jpg").write_bytes(frame)
                    n += 1
                    if args.count is not None and n >= args.count:
                        break
                    if args.secs is not None and time.monotonic() - t0 >= args.secs:
                        break
        finally:
            tello.stop_video()
        print(f"Saved {n} frame(s) to {out_dir}")
    return 0
