"""Command-line entry point: run one pipeline pass or serve the API.

    python -m orchid_climate zone-poll
    orchid-climate habitat-poll
    orchid-climate serve

Meant to be invoked by cron or a systemd timer; the exit status is
non-zero when the pass failed.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .config import settings

PASS_HELP = {
    "zone-poll": "Poll every growing zone, prune old readings, check alerts",
    "habitat-poll": "Fetch native-habitat weather and compact history",
    "compact": "Compact habitat weather history only",
    "alert-check": "Check climate and watering alerts",
    "seasonal-check": "Check rest and bloom season transitions",
}


def cmd_pass(args: argparse.Namespace) -> int:
    from .models.database import init_database
    from .services.passes import STATUS_FAILED, run_pass

    init_database()
    summary = asyncio.run(run_pass(args.command))
    print(json.dumps(summary, indent=2, default=str))
    return 1 if summary["status"] == STATUS_FAILED else 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "orchid_climate.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orchid-climate",
        description="Orchid climate pipeline: polling, compaction and alerts",
    )
    sub = parser.add_subparsers(dest="command")

    for name, help_text in PASS_HELP.items():
        sub.add_parser(name, help=help_text)

    serve = sub.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s:     %(name)s - %(message)s",
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "serve":
        return cmd_serve(args)
    return cmd_pass(args)


if __name__ == "__main__":
    sys.exit(main())
