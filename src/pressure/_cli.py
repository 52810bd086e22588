"""Pressure CLI — pressure demo.

Entry point for the ``pressure`` command-line interface.
"""

from __future__ import annotations

import argparse
import logging
import random
import string
import sys
import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pressure.core import Pressure

logger = logging.getLogger("pressure.demo")

DEMO_TEMPLATE = {"someKey": "Some Value", "anotherKey": "Another Value"}


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the pressure CLI."""
    parser = argparse.ArgumentParser(
        prog="pressure",
        description="Poll an upstream source and broadcast changes to websockets.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # pressure demo
    demo_parser = subparsers.add_parser(
        "demo",
        help="Serve a random string to websocket clients (requires pressure[demo])",
    )
    demo_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    demo_parser.add_argument("--port", type=int, default=8765, help="Bind port")
    demo_parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between changes of the upstream value",
    )
    demo_parser.add_argument(
        "--no-wrap", action="store_true", help="Send raw values as one-element arrays",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from pressure import __version__

    return __version__


class RandomTicker:
    """Upstream source for the demo: a random 8-letter string.

    The value changes every ``interval`` seconds and is stable in between, so
    most polls are suppressed as unchanged.
    """

    def __init__(self, interval: float) -> None:
        self._interval = interval
        self._lock = threading.Lock()
        self._value = ""
        self._changed_at = float("-inf")

    def __call__(self) -> str:
        with self._lock:
            now = time.monotonic()
            if now - self._changed_at >= self._interval:
                self._value = "".join(random.choices(string.ascii_uppercase, k=8))
                self._changed_at = now
            return self._value


def _make_handler(pressure: Pressure):
    """Websocket handler: register on open, relay client messages, remove on close."""

    def handler(websocket) -> None:
        pressure.add(websocket)
        logger.info("Connected: %d", len(pressure.registry))
        try:
            for message in websocket:
                for conn in pressure.connections:
                    conn.send(message)
        finally:
            pressure.remove(websocket)
            logger.info("Websocket closed: %d left", len(pressure.registry))

    return handler


def demo(*, host: str, port: int, interval: float, no_wrap: bool = False) -> None:
    """Run the demo websocket server until interrupted."""
    from websockets.sync.server import serve

    from pressure.core import Pressure

    with Pressure(RandomTicker(interval), wrapper_template=DEMO_TEMPLATE, no_wrap=no_wrap) as p:
        with serve(_make_handler(p), host, port) as server:
            print(f"  pressure demo on ws://{host}:{port}/", file=sys.stderr)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                server.shutdown()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "demo":
        demo(host=args.host, port=args.port, interval=args.interval, no_wrap=args.no_wrap)


if __name__ == "__main__":
    main()
