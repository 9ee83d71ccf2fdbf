"""Command-line interface for the KES exchange record service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from kes_exchange.clock import SystemClock
from kes_exchange.config import ServiceConfig, load_config, resolve_config_path
from kes_exchange.database import Database
from kes_exchange.handlers import ExchangeService
from kes_exchange.storage import Stores

logger = logging.getLogger("kes_exchange.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    # SUPPRESS keeps a subcommand from overwriting a --config given before it.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Path to the YAML configuration file (default: KES_EXCHANGE_CONFIG or config/exchange.yaml)",
    )

    parser = argparse.ArgumentParser(description="KES exchange record service", parents=[common])
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", config=None)

    subparsers.add_parser("init-db", parents=[common], help="Initialise the exchange database")
    subparsers.add_parser("list-users", parents=[common], help="Print every stored user profile")

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the HTTP API")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list-users"}

    # Global options may precede the subcommand; anything else unknown is a serve option.
    prefix: list[str] = []
    while args_list[:1] == ["--config"] and len(args_list) >= 2:
        prefix.extend(args_list[:2])
        args_list = args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*prefix, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*prefix, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*prefix, *args_list])


def _load_settings(config_arg: str | None) -> ServiceConfig:
    config_path = resolve_config_path(config_arg or os.getenv("KES_EXCHANGE_CONFIG"))
    config = load_config(config_path)
    db_override = os.getenv("KES_EXCHANGE_DB_PATH")
    if db_override:
        config = ServiceConfig(
            database_path=Path(db_override).expanduser().resolve(strict=False),
            host=config.host,
            port=config.port,
            log_level=config.log_level,
        )
    return config


def _initialise_database(config: ServiceConfig) -> Database:
    database = Database(config.database_path)
    database.initialize()
    logger.info("Database initialised at %s", config.database_path)
    return database


def _serve(*, database: Database, host: str, port: int, log_level: str) -> None:
    from kes_exchange.api import create_app
    import uvicorn

    logger.info("Starting exchange API on http://%s:%s", host, port)

    app = create_app(database=database)
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())


def _list_users(database: Database) -> None:
    service = ExchangeService(Stores.open(database), SystemClock())
    users = service.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found (last issued identifier: {service.stores.ids.current()}):")
    print(f"{'ID':>4}  {'Name':<24}  {'Phone':<12}  {'Email':<32}  Created")
    print("-" * 100)
    for user in users:
        created = datetime.fromtimestamp(user.created_at / 1_000_000_000, tz=timezone.utc)
        print(
            f"{user.id:>4}  {user.name:<24}  {user.phone_number:<12}  {user.email:<32}  "
            f"{created.strftime('%Y-%m-%d %H:%M:%S %Z')}"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    config = _load_settings(args.config)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    database = _initialise_database(config)

    if args.command == "serve":
        _serve(
            database=database,
            host=args.host if args.host is not None else config.host,
            port=args.port if args.port is not None else config.port,
            log_level=config.log_level,
        )
    elif args.command == "list-users":
        _list_users(database)
    elif args.command == "init-db":
        last_id = Stores.open(database).ids.current()
        print(f"Database initialisation complete. Last issued identifier: {last_id}")


if __name__ == "__main__":
    main()
