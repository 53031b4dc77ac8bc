"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m miniserv                        # Serve the examples on :8080
    python -m miniserv --port 3000            # Custom port
    python -m miniserv --concurrency pool -w 8
    python -m miniserv --log-level DEBUG

Environment variables (MINISERV_*) provide the defaults; command-line
flags override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, CONCURRENCY_MODES
from .handlers import register_examples
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="miniserv",
        description="Minimal HTTP server with exact-path routing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m miniserv                          # Run with defaults
  python -m miniserv --port 3000              # Custom port
  python -m miniserv --host 127.0.0.1         # Localhost only
  python -m miniserv --concurrency pool -w 8  # Bounded pool of 8 threads
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--concurrency",
        choices=CONCURRENCY_MODES,
        default=defaults.concurrency,
        help="'thread' starts a thread per connection, 'pool' uses a fixed pool",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Pool size in pool mode (default: {defaults.max_workers})",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=defaults.queue_size,
        help=f"Connections waiting for a pool worker (default: {defaults.queue_size})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"miniserv {__version__}",
    )

    return parser


def config_from_args(argv=None) -> ServerConfig:
    """Merge environment defaults with command-line overrides."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    return ServerConfig(
        host=args.host,
        port=args.port,
        concurrency=args.concurrency,
        max_workers=args.workers,
        queue_size=args.queue_size,
        log_level=args.log_level,
    )


def main(argv=None):
    config = config_from_args(argv)

    try:
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    register_examples(server.router)

    try:
        server.serve(config.port)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
