# telloclient/cli/main.py
from __future__ import annotations

from typing import Optional

from telloclient.core.errors import TelloError
from telloclient.protocol.errors import ProtocolError

from telloclient.cli.args import parse_args
from telloclient.cli.commands import (
    cmd_capture,
    cmd_emergency,
    cmd_fly_demo,
    cmd_record,
    cmd_send,
    cmd_status,
    configure_file_logging,
    configure_logging,
)

_COMMANDS = {
    "status": cmd_status,
    "send": cmd_send,
    "fly-demo": cmd_fly_demo,
    "emergency": cmd_emergency,
    "capture": cmd_capture,
    "record": cmd_record,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(verbose=args.verbose)
    if args.log_file:
        configure_file_logging(args.log_file)

    handler = _COMMANDS.get(args.cmd)
    if handler is None:
        return 2

    try:
        return handler(args)
    except TelloError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1
    except ProtocolError as e:
        print(f"ERROR: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
