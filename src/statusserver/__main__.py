"""
=============================================================================
STATUSSERVER CLI ENTRY POINT
=============================================================================

    # Defaults: PORT from the environment, else 10001
    python -m statusserver

    # Override the port / bind address
    python -m statusserver --port 3000 --host 127.0.0.1

    # Chatty connection-level logs
    python -m statusserver --log-level DEBUG

Exit status:

    0   stopped after SIGINT/SIGTERM (graceful or forced)
    1   the listener failed (port in use, invalid port, ...)

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import load_config
from .core.listener import ListenerError
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statusserver",
        description="Minimal HTTP status and health-check service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  PORT        listen port (default: 10001)
  LOG_LEVEL   logging level (default: INFO)
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        default=None,
        help="Port to listen on (overrides PORT)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (overrides LOG_LEVEL)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"statusserver {__version__}"
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Environment first, flags on top.
    config = load_config()
    overrides = {
        name: value
        for name, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    if overrides:
        config = config.replace(**overrides)

    try:
        HTTPServer(config).run()
    except ListenerError:
        # Already logged by the server.
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
