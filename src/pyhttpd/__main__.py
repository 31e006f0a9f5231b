"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Run with defaults (localhost:4221)
    python -m pyhttpd

    # Serve and accept uploads under /tmp/data
    pyhttpd --directory /tmp/data

    # Listen on all interfaces, verbose
    pyhttpd --host 0.0.0.0 --log-level DEBUG

Settings come from, highest priority first: command-line flags, PYHTTPD_*
environment variables, ServerConfig defaults.

=============================================================================
"""

from typing import List, Optional
import argparse
import dataclasses
import sys

from . import __version__
from .app import create_server
from .config import ServerConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyhttpd",
        description="HTTP/1.1 server with keep-alive, gzip and file upload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pyhttpd                            # Run with defaults
  pyhttpd --port 8080                # Custom port
  pyhttpd --directory ./data         # Enable /files/{filename}
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Idle connection timeout in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Directory for GET/POST /files/{filename}"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"pyhttpd {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """
    Overlay the flags that were given on top of a base config.

    Flags left at None keep the base (environment or default) value.
    """
    base = base or ServerConfig.from_env()
    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "directory": args.directory,
        "log_level": args.log_level,
    }
    return dataclasses.replace(
        base, **{key: value for key, value in overrides.items() if value is not None}
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_server(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
