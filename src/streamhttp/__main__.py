"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

Run the server with:

    python -m streamhttp [--directory DIR] [--host H] [--port P]
                         [--workers N] [--log-level LEVEL]

Settings are layered: flags override HTTP_* environment variables, which
override the ServerConfig defaults.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="streamhttp",
        description="Minimal streaming HTTP/1.1 file and echo server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m streamhttp                          # 127.0.0.1:4221, cwd
  python -m streamhttp --directory /tmp/files   # Serve /files/ from here
  python -m streamhttp --port 8000 --workers 8
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Root directory for /files/ (default: current directory)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)",
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Socket timeout in seconds, 0 for none (default: 30)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"streamhttp {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Merge parsed flags over the environment-derived configuration."""
    config = ServerConfig.from_env()

    if args.directory is not None:
        config.root_dir = args.directory
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.timeout is not None:
        config.timeout = args.timeout or None
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server and run it until interrupted.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
