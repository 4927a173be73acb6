import argparse
import logging
import sys

import uvicorn

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.app_shell.config import ConfigError, Settings, load_settings
from src.components.subscriptions.models import StoreError
from src.core.telemetry import init_logging

logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> int:
    migrator = SQLiteMigrator(settings.database.path, settings.database.migrations_dir)
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s).")
    for filename in applied:
        print(f"  {filename}")
    return 0


def handle_serve(settings: Settings, args: argparse.Namespace) -> int:
    uvicorn.run(
        "src.api.main:app",
        host=settings.application.host,
        port=settings.application.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


def handle_status(settings: Settings, args: argparse.Namespace) -> int:
    store = SQLiteSubscriptionStore(
        settings.database.path, timeout=settings.database.acquire_timeout_seconds
    )
    records = store.list_subscribers_by_email(args.email)
    if not records:
        print(f"No subscriber found for {args.email}.")
        return 1

    for record in records:
        subscribed_at = record.subscribed_at.isoformat()
        print(f"{record.id}  {record.status.value:<22} {subscribed_at}  {record.name}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Newsletter CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # status
    status_parser = subparsers.add_parser("status", help="Show subscriber status by email")
    status_parser.add_argument("email", help="Subscriber email address")

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"CRITICAL: {e}", file=sys.stderr)
        return 1

    init_logging("newsletter-cli", level=settings.logging.level, json_logs=settings.logging.json_logs)

    handlers = {
        "migrate": handle_migrate,
        "serve": handle_serve,
        "status": handle_status,
    }
    try:
        return handlers[args.command](settings, args)
    except StoreError as e:
        logger.error("Command %s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
