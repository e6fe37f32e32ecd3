"""
=============================================================================
MINIHTTP CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:4221, no /files/ directory
    python -m minihttp

    # Serve and accept files under /tmp/data
    python -m minihttp --directory /tmp/data

    # Listen on all interfaces, verbose
    python -m minihttp --host 0.0.0.0 --port 8080 --log-level DEBUG

Installed as the `minihttp` console script as well.

Environment variables (HTTP_HOST, HTTP_PORT, HTTP_DIRECTORY, HTTP_TIMEOUT,
HTTP_LOG_LEVEL) supply the defaults; command-line flags override them.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .server import HTTPServer
from .config import ServerConfig
from .middleware import LoggingMiddleware


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server with echo and file endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  minihttp                              # Run with defaults
  minihttp --directory /tmp/data        # Enable /files/<name>
  minihttp --host 0.0.0.0 --port 8080   # Listen on all interfaces
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        type=str,
        default=defaults.directory,
        help="Directory behind /files/<name>; /files/ answers 404 without it"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server and run it until interrupted.

    Returns the process exit status: 0 after a clean shutdown, 1 when the
    configuration is invalid or the address cannot be bound.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    try:
        config = defaults.with_overrides(
            host=args.host,
            port=args.port,
            directory=args.directory,
            log_level=args.log_level,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server = HTTPServer(config)

    # Access log is always on; its level follows --log-level
    server.use(LoggingMiddleware())

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
