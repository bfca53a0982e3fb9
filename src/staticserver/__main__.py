"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 0.0.0.0:8080
    python -m staticserver

    # Serve ./public on localhost:3000
    python -m staticserver -b 127.0.0.1 -p 3000 -d ./public

    # More workers, JSON access log
    python -m staticserver -w 8 --log-format json

Settings come from the environment first (STATIC_HOST, STATIC_PORT,
STATIC_ROOT, STATIC_WORKERS, STATIC_TIMEOUT, STATIC_LOG_LEVEL); any flag
given on the command line overrides its variable.

Exit status:
    0   stopped normally (Ctrl+C / SIGTERM)
    1   could not start (bad directory, port in use, invalid config)
    2   bad command line (argparse usage error)

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import StartupError, StaticFileServer


logger = logging.getLogger("staticserver")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve a directory over HTTP/1.1, with directory listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                         # Serve . on 0.0.0.0:8080
  python -m staticserver -p 3000 -d ./public     # Serve ./public on port 3000
  python -m staticserver -b 127.0.0.1            # Localhost only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-b", "--bind",
        metavar="ADDRESS",
        default=None,
        help="Address to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-d", "--directory",
        metavar="DIR",
        default=None,
        help="Directory to serve (default: current directory)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE / LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=None,
        help="Worker threads kept ready (default: 4; up to 2x this stay after load)"
    )

    parser.add_argument(
        "-l", "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace, base: ServerConfig) -> ServerConfig:
    """Apply the flags that were given on top of `base`."""
    if args.bind is not None:
        base.host = args.bind
    if args.port is not None:
        base.port = args.port
    if args.directory is not None:
        base.root = args.directory
    if args.workers is not None:
        base.min_workers = args.workers
        base.max_workers = args.workers * 2
    if args.log_level is not None:
        base.log_level = args.log_level
    if args.log_format is not None:
        base.log_format = args.log_format
    return base


def main(argv: Optional[Sequence[str]] = None):
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:]).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        base = ServerConfig.from_env()
    except ValueError as e:
        parser.error(f"invalid STATIC_* environment variable: {e}")

    config = config_from_args(args, base)
    server = StaticFileServer(config)

    try:
        server.run()
    except StartupError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
