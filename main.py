"""Command line entry point for a speedtest.net download measurement."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from netspeed import bootstrap
from netspeed.errors import SpeedtestError

LOGGER = logging.getLogger("netspeed.cli")

USAGE = """usage: {prog} [-help] [-share] [-simple] [-list] [-server SERVER]

Command line interface for testing internet bandwidth using speedtest.net.
--------------------------------------------------------------------------

optional arguments
\t-help\t\t\tShow this help message and exit
\t-share\t\t\tGenerate and provide a URL to the speedtest.net share results image
\t-simple\t\t\tSuppress verbose output, only show basic information
\t-list\t\t\tDisplay a list of speedtest.net servers sorted by distance
\t-server SERVER\t\tSpecify a server ID to test against
\t-config PATH\t\tPath to config.yaml
\t-debug\t\t\tEnable debug logging
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="netspeed", add_help=False)
    parser.add_argument("-help", action="store_true")
    parser.add_argument("-share", action="store_true")
    parser.add_argument("-simple", action="store_true")
    parser.add_argument("-list", action="store_true")
    parser.add_argument("-server", default=None)
    parser.add_argument("-config", default=None)
    parser.add_argument("-debug", action="store_true")
    return parser.parse_args(argv)


def usage() -> str:
    return USAGE.format(prog="netspeed")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.help:
        print(usage())
        return 2

    try:
        context = bootstrap(
            args.config,
            quiet=True if args.simple else None,
            server_id=args.server,
            log_level="DEBUG" if args.debug else None,
        )
    except (FileNotFoundError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    if args.share:
        LOGGER.warning("-share is not supported; only the download figure is reported")

    try:
        if args.list:
            for server in context.measurements.list_servers():
                print(f"{server.server_id}) {server.sponsor} ({server.name}, {server.country}) [{server.distance_km:.2f} km]")
            return 0

        result = context.measurements.run_speedtest()
    except SpeedtestError as exc:
        LOGGER.error("Speedtest aborted: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Download: {result.download_mbps:0.2f} Mbit/s")
    return 0


def main_entry() -> None:
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
