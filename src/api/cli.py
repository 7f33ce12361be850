"""Command-line entry point.

Usage:
    SS_EXEC=/usr/local/bin/engine python -m api server --port 3000 --debug
"""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from domain.engine.errors import EngineError

from .server import create_app
from .settings import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="engine-proxy", description="HTTP proxy for a stdin/stdout propagation engine"
    )
    sub = parser.add_subparsers(dest="command", required=True)
    server = sub.add_parser("server", help="run the server that serves the API")
    server.add_argument("--host", type=str, default=None, help="bind address (HOST)")
    server.add_argument("--port", type=int, default=None, help="bind port (PORT)")
    server.add_argument("--debug", action="store_true", help="debug logging (DEBUG)")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)


def run_server(args: argparse.Namespace) -> None:
    settings = Settings.from_env()
    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port))
        if value is not None
    }
    if args.debug:
        overrides["debug"] = True
    settings = settings.model_copy(update=overrides)

    configure_logging(settings.debug)
    app = create_app(settings)
    logger.info("Binding to %s:%d (%s mode)...", settings.host, settings.port, settings.mode)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "server":
            run_server(args)
    except EngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
