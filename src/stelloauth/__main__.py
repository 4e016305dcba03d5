"""stelloauth entry point.

Changes:
  - 2026-10-19: --mode flag selects browser or http login without env vars.
  - 2026-10-19: Rich logging for console output.
"""

import argparse
import logging
import os

from stelloauth import __version__
from stelloauth.config import get_settings
from stelloauth.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Stellantis OAuth Helper - retrieve portal authorization codes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stelloauth                         Serve on 0.0.0.0:8080 with headless Chrome
  stelloauth --mode http             Replay the login form without a browser
  stelloauth --port 9000 --dev       Auto-reload on code changes

Every option can also be set with STELLOAUTH_* environment variables.
""",
    )
    parser.add_argument("--host", type=str, default=None, help="Interface to bind")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on")
    parser.add_argument(
        "--mode",
        choices=("browser", "http"),
        default=None,
        help="Login automation: headless browser (default) or manual HTTP",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING...)",
    )
    parser.add_argument("--dev", action="store_true", help="Development mode with auto-reload")
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    # Flags win over the environment; exported so reload workers see them too
    overrides = {
        "STELLOAUTH_HOST": args.host,
        "STELLOAUTH_PORT": args.port,
        "STELLOAUTH_LOGIN_MODE": args.mode,
        "STELLOAUTH_LOG_LEVEL": args.log_level,
    }
    for key, value in overrides.items():
        if value is not None:
            os.environ[key] = str(value)
    get_settings.cache_clear()
    settings = get_settings()

    setup_logging(level=settings.log_level)

    from stelloauth.server import run_server

    try:
        run_server(settings, dev=args.dev)
    except KeyboardInterrupt:
        logger.info("stelloauth stopped.")


if __name__ == "__main__":
    main()
