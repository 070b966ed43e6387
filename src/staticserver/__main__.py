"""
=============================================================================
STATIC FILE SERVER CLI ENTRY POINT
=============================================================================

    staticserver <port> <root_directory> [options]

    # Serve ./public on port 8080
    staticserver 8080 ./public

    # Same thing, as a module
    python -m staticserver 8080 ./public

    # Localhost only, more workers, JSON access log
    staticserver 8080 ./public --host 127.0.0.1 --workers 32 --log-format json

=============================================================================
EXIT STATUS
=============================================================================

    0   Clean shutdown (Ctrl+C / SIGTERM), or --help / --version
    1   Bad arguments (usage on stderr), or the address could not be resolved
    2   The listening socket could not be bound

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import HTTPServer
from .config import ServerConfig, LOG_FORMATS
from .core import AddressResolutionError, BindError


EXIT_USAGE = 1
EXIT_BIND = 2


class ArgumentParser(argparse.ArgumentParser):
    """argparse with usage errors mapped to exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="staticserver",
        description="Serve files from a directory over HTTP/1.0 (GET only)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserver 8080 ./public                     # Serve ./public on port 8080
  staticserver 0 ./public                        # Let the OS pick a port
  staticserver 8080 ./public --host 127.0.0.1    # Localhost only
  staticserver 8080 ./public --log-format json   # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUIRED ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "port",
        type=int,
        help="Port number to listen on (a number, not a service name)"
    )
    parser.add_argument("root_directory", help="Directory to serve files from")

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK / PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: every local address)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: HTTP_WORKERS or 16)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Per-connection receive/send deadline in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
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
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    CLI entry point.

    Returns the exit status (0 after a clean shutdown); exits directly
    with 1 or 2 on the failures listed in the module docstring.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # =========================================================================
    # CONFIGURATION: CLI over environment over defaults
    # =========================================================================

    try:
        config = ServerConfig.from_env(
            document_root=args.root_directory,
            port=args.port,
            host=args.host,
            max_workers=args.workers,
            timeout=args.timeout,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        server = HTTPServer(config)
    except ValueError as e:
        parser.error(str(e))

    # =========================================================================
    # RUN (blocks until Ctrl+C / SIGTERM)
    # =========================================================================

    try:
        server.run()
    except AddressResolutionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    except BindError as e:
        print(str(e), file=sys.stderr)
        sys.exit(EXIT_BIND)

    return 0


if __name__ == "__main__":
    sys.exit(main())
