"""Command line entry point for palette-db.

Run with:
  python -m palette_db validate firebase config.json
  python -m palette_db test supabase config.json
  python -m palette_db connect firebase studio config.json
  python -m palette_db list
  python -m palette_db activate studio
  python -m palette_db restore
  python -m palette_db rename studio atelier
  python -m palette_db forget studio

Config files are JSON objects; "-" reads from stdin. Settings come from
PALETTE_DB_* environment variables, loaded from .env when present.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from palette_core.config import PaletteDBConfig
from palette_core.errors import BackendConnectionError, ValidationError
from palette_core.types import BackendType
from palette_core.validation import validate_config
from palette_db.adapters import AdapterFactory
from palette_db.connection_store import ConnectionStore
from palette_db.kv import open_key_value_store
from palette_db.registry import ConnectionRegistry
from palette_db.startup import restore_active_connection

logger = logging.getLogger("palette_db")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _read_config(path: str) -> dict[str, Any]:
    text = sys.stdin.read() if path == "-" else Path(path).read_text()
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("config must be a JSON object")
    return data


def _build_registry(config: PaletteDBConfig) -> ConnectionRegistry:
    kv = open_key_value_store(config.store)
    return ConnectionRegistry(
        AdapterFactory.default(config.adapters),
        ConnectionStore(kv, config.store.key),
        config.registry,
    )


def _close(registry: ConnectionRegistry) -> None:
    close = getattr(registry.store.kv, "close", None)
    if close is not None:
        close()


def _cmd_validate(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    result = validate_config(args.type, _read_config(args.config))
    if result.valid:
        print("valid")
        return EXIT_OK
    for error in result.errors:
        print(error)
    return EXIT_FAILED


async def _cmd_test(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        result = await registry.test_connection(args.type, _read_config(args.config))
    finally:
        _close(registry)
    if not result:
        print(f"failed ({result.kind.value if result.kind else 'unknown'}): {result.error}")
        return EXIT_FAILED
    print("ok" + (f" (warning: {result.warning})" if result.warning else ""))
    return EXIT_OK


async def _cmd_connect(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        connection_id = await registry.connect_to_backend(
            _read_config(args.config), args.type, args.name
        )
        connection = registry.get(connection_id)
        print(connection_id)
        if connection is not None and connection.warning:
            print(f"warning: {connection.warning}")
        await registry.disconnect_all()
    except ValidationError as exc:
        for error in exc.errors:
            print(error)
        return EXIT_FAILED
    except BackendConnectionError as exc:
        print(f"failed ({exc.kind.value}): {exc}")
        return EXIT_FAILED
    finally:
        _close(registry)
    return EXIT_OK


def _cmd_list(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        records = registry.store.list_all()
    finally:
        _close(registry)
    for record in records:
        marker = "*" if record.is_active else " "
        last_used = datetime.fromtimestamp(record.last_used / 1000, tz=timezone.utc)
        print(f"{marker} {record.name}\t{record.type.value}\t{last_used:%Y-%m-%d %H:%M}")
    return EXIT_OK


def _cmd_activate(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        found = registry.store.mark_active(args.name)
    finally:
        _close(registry)
    if not found:
        print(f"no saved connection named {args.name!r}")
        return EXIT_FAILED
    return EXIT_OK


async def _cmd_restore(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        connection_id = await restore_active_connection(registry)
        await registry.disconnect_all()
    finally:
        _close(registry)
    if connection_id is None:
        print("nothing restored")
        return EXIT_FAILED
    print(connection_id)
    return EXIT_OK


def _cmd_rename(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        renamed = registry.store.rename(args.name, args.new_name)
    except ValueError as exc:
        print(exc)
        return EXIT_FAILED
    finally:
        _close(registry)
    if not renamed:
        print(f"no saved connection named {args.name!r}")
        return EXIT_FAILED
    return EXIT_OK


def _cmd_forget(args: argparse.Namespace, config: PaletteDBConfig) -> int:
    registry = _build_registry(config)
    try:
        removed = registry.store.delete(args.name)
    finally:
        _close(registry)
    if not removed:
        print(f"no saved connection named {args.name!r}")
        return EXIT_FAILED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="palette-db", description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)
    types = [backend_type.value for backend_type in BackendType]

    p = sub.add_parser("validate", help="check a config without connecting")
    p.add_argument("type", choices=types)
    p.add_argument("config", help="JSON config file, or - for stdin")

    p = sub.add_parser("test", help="connect and disconnect without saving")
    p.add_argument("type", choices=types)
    p.add_argument("config")

    p = sub.add_parser("connect", help="connect and save as the active connection")
    p.add_argument("type", choices=types)
    p.add_argument("name")
    p.add_argument("config")

    sub.add_parser("list", help="list saved connections")

    p = sub.add_parser("activate", help="mark a saved connection active")
    p.add_argument("name")

    sub.add_parser("restore", help="reconnect to the active saved connection")

    p = sub.add_parser("rename", help="rename a saved connection")
    p.add_argument("name")
    p.add_argument("new_name")

    p = sub.add_parser("forget", help="delete a saved connection")
    p.add_argument("name")
    return parser


COMMANDS = {
    "validate": _cmd_validate,
    "test": _cmd_test,
    "connect": _cmd_connect,
    "list": _cmd_list,
    "activate": _cmd_activate,
    "restore": _cmd_restore,
    "rename": _cmd_rename,
    "forget": _cmd_forget,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point with subcommand support."""
    project_path = os.getenv("PALETTE_DB_PROJECT_PATH")
    if project_path and (Path(project_path) / ".env").exists():
        load_dotenv(Path(project_path) / ".env")
    else:
        load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = PaletteDBConfig.from_env()
        outcome = COMMANDS[args.command](args, config)
        if asyncio.iscoroutine(outcome):
            outcome = asyncio.run(outcome)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    return outcome


if __name__ == "__main__":
    sys.exit(main())
