"""Command-line interface for running and checking the expense report service."""

from __future__ import annotations

import argparse

import uvicorn
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .database import create_pool_engine
from .logging import setup_logger
from .server import create_app

DESCRIPTION = "Expense report REST service"

# Uvicorn lets in-flight requests finish for this long before the pool drain starts.
GRACEFUL_SHUTDOWN_SECONDS = 30


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expense-api", description=DESCRIPTION)
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mirror logs to LOG_DIR/combined.log in JSON format",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address (defaults to HOST)")
    serve.add_argument("--port", type=int, help="Bind port (defaults to PORT)")

    sub.add_parser("check-db", help="Verify the database connection and print its details")
    return parser


def _handle_serve(args: argparse.Namespace, settings: Settings) -> None:
    app = create_app(settings)
    uvicorn.run(
        app,
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_SECONDS,
        log_config=None,
    )


def check_connection(settings: Settings) -> bool:
    """Open one connection, run a probe query and report what was reached."""

    engine = create_pool_engine(settings)
    url = engine.url.render_as_string(hide_password=True)
    print("----------------------------------------------")
    print("DATABASE CONNECTION CHECK")
    print("----------------------------------------------")
    print(f"- URL: {url}")
    print(f"- Pool: min={settings.DB_POOL_MIN} max={settings.DB_POOL_MAX} increment={settings.DB_POOL_INCREMENT}")
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            info = connection.dialect.server_version_info
    except SQLAlchemyError as exc:
        print("CONNECTION FAILED")
        print(f"- Error: {getattr(exc, 'orig', None) or exc}")
        return False
    finally:
        engine.dispose()
    print("CONNECTION SUCCESSFUL")
    print(f"- Dialect: {engine.dialect.name}")
    if info:
        print(f"- Server version: {'.'.join(str(part) for part in info)}")
    return True


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    if args.json_logs is not None:
        settings = settings.model_copy(update={"JSON_LOGS": args.json_logs})
    setup_logger(json_format=settings.JSON_LOGS, level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
    if args.cmd == "serve":
        _handle_serve(args, settings)
    elif args.cmd == "check-db":
        if not check_connection(settings):
            raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
