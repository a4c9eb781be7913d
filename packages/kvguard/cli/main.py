"""Command-line interface for kvguard.

Operates on a file-backed cache so entries survive between invocations.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from rich.console import Console

from kvguard.core.caching.engine import CacheEngine
from kvguard.core.caching.errors import InvalidFormat
from kvguard.core.caching.factory import create_engine
from kvguard.core.caching.models import CacheScope
from kvguard.core.config.loader import configure_logging, load_app_config
from kvguard.core.config.models import StoreConfig

console = Console()
logger = logging.getLogger(__name__)


def build_engine(args: argparse.Namespace) -> CacheEngine:
    """Load configuration and build a file-backed engine.

    Args:
        args: Parsed arguments (uses --config and --root)

    Returns:
        CacheEngine over a FileStore per scope

    Raises:
        FileNotFoundError: If --config names a missing file
        ValueError: If the config file is invalid
    """
    config = load_app_config(Path(args.config) if args.config else None)
    configure_logging(config)

    root = args.root or config.store.root
    config = config.model_copy(update={"store": StoreConfig(backend="file", root=root)})
    logger.debug(f"Using file store at {root}")

    return create_engine(config)


def cmd_get(engine: CacheEngine, args: argparse.Namespace) -> int:
    """Print the cached value as JSON."""
    value = engine.get_safe(args.path, args.content, args.scope)
    # A cached JSON null also reads back as None
    if value is None and not engine.is_valid(args.path, args.content, args.scope):
        console.print(f"[yellow]No valid cache entry for {args.path}[/yellow]")
        return 1

    console.print_json(data=value)
    return 0


def cmd_put(engine: CacheEngine, args: argparse.Namespace) -> int:
    """Replace the entry for a path with a JSON value."""
    try:
        value = json.loads(args.value)
    except json.JSONDecodeError as e:
        console.print(f"[red]ERROR: Value is not valid JSON: {e}[/red]")
        return 1

    options = {"expiration": args.expiration} if args.expiration else None
    try:
        engine.force_refresh(args.path, value, args.content, args.scope, options)
    except InvalidFormat as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    if not engine.is_valid(args.path, args.content, args.scope):
        console.print(f"[yellow]Value for {args.path} was not cached[/yellow]")
        return 1

    console.print(f"[green]Cached {args.path}[/green]")
    return 0


def cmd_check(engine: CacheEngine, args: argparse.Namespace) -> int:
    """Report whether a valid entry exists."""
    if engine.is_valid(args.path, args.content, args.scope):
        console.print(f"[green]valid[/green] {args.path}")
        return 0

    console.print(f"[yellow]invalid[/yellow] {args.path}")
    return 1


def cmd_clear(engine: CacheEngine, args: argparse.Namespace) -> int:
    """Remove the entry for a path."""
    engine.clear_for_path(args.path, args.scope)
    console.print(f"Cleared {args.path}")
    return 0


def cmd_clean(engine: CacheEngine, args: argparse.Namespace) -> int:
    """Remove expired entries among the given paths."""
    result = engine.clean_expired_entries(args.scope, args.paths)
    console.print(f"Checked {result.checked} path(s), removed {len(result.removed)}")
    for path in result.removed:
        console.print(f"   - {path}")
    return 0


_COMMANDS = {
    "get": cmd_get,
    "put": cmd_put,
    "check": cmd_check,
    "clear": cmd_clear,
    "clean": cmd_clean,
}


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="kvguard",
        description="kvguard - validated cache over a key-value store",
    )
    p.add_argument("--config", default=None, help="Path to config file (default: kvguard.yaml)")
    p.add_argument("--root", default=None, help="Cache directory (overrides store.root)")

    scope_choices = [s.value.lower() for s in CacheScope]

    def add_scope(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--scope",
            default="document",
            type=str.lower,
            choices=scope_choices,
            help="Cache scope (default: document)",
        )

    sub = p.add_subparsers(dest="cmd", required=True)

    get = sub.add_parser("get", help="Print a cached value")
    get.add_argument("path", help="Cache path")
    get.add_argument("--content", default=None, help="Validation content")
    add_scope(get)

    put = sub.add_parser("put", help="Store a JSON value, replacing any existing entry")
    put.add_argument("path", help="Cache path")
    put.add_argument("value", help="JSON value to store")
    put.add_argument("--content", default=None, help="Validation content")
    put.add_argument("--expiration", default=None, help='Lifetime such as "30s", "20m" or "1d"')
    add_scope(put)

    check = sub.add_parser("check", help="Exit 0 if a valid entry exists")
    check.add_argument("path", help="Cache path")
    check.add_argument("--content", default=None, help="Validation content")
    add_scope(check)

    clear = sub.add_parser("clear", help="Remove an entry")
    clear.add_argument("path", help="Cache path")
    add_scope(clear)

    clean = sub.add_parser("clean", help="Remove expired entries among the given paths")
    clean.add_argument("paths", nargs="+", help="Cache paths to check")
    add_scope(clean)

    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code (0 for success, 1 for a miss or bad input)
    """
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        engine = build_engine(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return 1

    return _COMMANDS[args.cmd](engine, args)


if __name__ == "__main__":
    sys.exit(main())
