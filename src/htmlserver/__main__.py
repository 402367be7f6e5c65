"""
=============================================================================
HTML SERVER CLI ENTRY POINT
=============================================================================

    python -m htmlserver                      # localhost:8000
    python -m htmlserver --log-level DEBUG
    HTML_BIND_ADDRESS=:8080 htmlserver        # all interfaces, port 8080

The process:

    1. Read configuration (defaults, then HTML_* environment variables)
    2. Load templates and build the request handler
    3. ServerHandle.start()
    4. Block until SIGINT or SIGTERM
    5. handle.stop(), exit 0 (1 if the forced close failed)

=============================================================================
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .core import ForceCloseError
from .server import ServerHandle, create_app


logger = logging.getLogger("htmlserver")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str):
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htmlserver",
        description="Serve the server-rendered HTML views and static assets.",
        epilog="Bind address and timeouts come from HTML_* environment variables.",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: HTML_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"htmlserver {__version__}",
    )
    return parser


def wait_for_signal(stop_event: threading.Event, signals=(signal.SIGINT, signal.SIGTERM)):
    """
    Block the main thread until one of signals arrives.

    The previous handlers are restored before returning.
    """
    def on_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}")
        stop_event.set()

    previous = {sig: signal.signal(sig, on_signal) for sig in signals}
    try:
        # Event.wait() with no timeout can't be interrupted on some
        # platforms, so poll in short slices
        while not stop_event.wait(0.5):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.log_level:
        config = config.with_overrides(log_level=args.log_level)

    setup_logging(config.log_level)

    try:
        handler = create_app(config)
        handle = ServerHandle.start(config, handler)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    wait_for_signal(threading.Event())
    logger.info("main : shutting down")

    try:
        handle.stop()
    except ForceCloseError as e:
        logger.error(f"Shutdown failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
