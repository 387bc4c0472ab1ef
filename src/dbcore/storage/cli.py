# src/dbcore/storage/cli.py
"""
Storage CLI commands for dbcore.

Commands:
- ``info``      Show the resolved connection descriptor (password masked)
- ``check``     Connect with retry and report readiness
- ``migrate``   Apply pending migrations
- ``drop``      Drop every catalog table
- ``truncate``  Empty every catalog table

Available as ``dbcore-storage <command>`` once installed.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from ..api import Database
from ..config.loader import load_config
from ..config.models import DatabaseSettings
from ..exceptions import DBCoreError
from ..logging_config import configure_logging
from .resolver import resolve
from .schema import DEFAULT_SCHEMA, MIGRATIONS_TABLE, TableCatalog

logger = logging.getLogger(__name__)


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

class OutputFormatter:
    """Formats CLI output as colored text or JSON."""

    COLORS = {
        'green': '\033[92m',
        'red': '\033[91m',
        'yellow': '\033[93m',
        'cyan': '\033[96m',
        'bold': '\033[1m',
        'reset': '\033[0m',
    }

    def __init__(self, use_color: bool = True, json_output: bool = False):
        self.use_color = use_color and sys.stdout.isatty()
        self.json_output = json_output

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def success(self, text: str) -> str:
        return self._color(f"✓ {text}", 'green')

    def error(self, text: str) -> str:
        return self._color(f"✗ {text}", 'red')

    def warning(self, text: str) -> str:
        return self._color(f"⚠ {text}", 'yellow')

    def header(self, text: str) -> str:
        return self._color(text, 'bold')

    def emit(self, payload: Dict[str, Any], lines: List[str]) -> None:
        """Print ``payload`` as JSON or ``lines`` as text, depending on mode."""
        if self.json_output:
            print(json.dumps(payload, indent=2, default=str))
        else:
            for line in lines:
                print(line)


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_info(settings: DatabaseSettings, formatter: OutputFormatter) -> int:
    """Show the resolved connection descriptor and lifecycle settings."""
    descriptor = resolve(settings.backend)
    catalog = TableCatalog.from_schema(DEFAULT_SCHEMA)
    payload = {
        "connection": descriptor.masked(),
        "connect_timeout_seconds": settings.connect_timeout_seconds,
        "retry_interval_seconds": settings.retry_interval_seconds,
        "migrations_dir": settings.migrations_dir or "<built-in>",
        "migrations_table": MIGRATIONS_TABLE,
        "catalog_tables": len(catalog),
    }
    lines = [formatter.header("Database Configuration"), "=" * 45]
    for key, value in payload["connection"].items():
        lines.append(f"  {key}: {formatter._color(str(value), 'cyan')}")
    lines.append(f"  connect timeout: {settings.connect_timeout_seconds:g}s")
    lines.append(f"  migrations: {payload['migrations_dir']}")
    lines.append(f"  catalog tables: {len(catalog)}")
    formatter.emit(payload, lines)
    return 0


async def _run_lifecycle(settings: DatabaseSettings, action: str) -> Dict[str, Any]:
    db = await Database.create(settings)
    try:
        result: Dict[str, Any] = {"action": action}
        if action == "check":
            check = db.last_check
            result["ready"] = check.is_ready
            result["latest_migration"] = check.latest_migration_name
        elif action == "migrate":
            result["applied"] = await db.migrate()
        elif action == "drop":
            result["tables"] = await db.drop_tables()
        elif action == "truncate":
            result["tables"] = await db.truncate_tables()
        else:
            raise ValueError(f"Unknown action: {action}")
        return result
    finally:
        await db.close()


def cmd_lifecycle(settings: DatabaseSettings, action: str, formatter: OutputFormatter) -> int:
    """
    Connect and run ``action`` (check, migrate, drop, truncate).

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    try:
        result = asyncio.run(_run_lifecycle(settings, action))
    except Exception as e:
        logger.debug(f"Storage command '{action}' failed", exc_info=True)
        formatter.emit({"action": action, "error": str(e)}, [formatter.error(str(e))])
        return 1

    if action == "check":
        state = "ready" if result["ready"] else "not migrated"
        lines = [formatter.success(f"Connected ({state})")]
        if result["latest_migration"]:
            lines.append(f"  latest migration: {result['latest_migration']}")
    elif action == "migrate":
        applied = result["applied"]
        lines = [formatter.success(
            f"Applied {len(applied)} migration(s): {', '.join(applied)}" if applied
            else "Database schema is up to date"
        )]
    else:
        lines = [formatter.success(f"{action.capitalize()}: {result['tables']} table(s)")]
    formatter.emit(result, lines)
    return 0


# =============================================================================
# MAIN CLI ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbcore-storage",
        description="dbcore database lifecycle CLI"
    )
    parser.add_argument("--config", "-c", help="Path to configuration file", default=None)
    parser.add_argument("--json", help="Output in JSON format", action="store_true")
    parser.add_argument("--no-color", help="Disable colored output", action="store_true")
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Seconds to keep retrying the connection (overrides config)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("info", help="Show the resolved connection settings")
    subparsers.add_parser("check", help="Connect and report schema readiness")
    subparsers.add_parser("migrate", help="Apply pending migrations")
    subparsers.add_parser("drop", help="Drop all tables")
    subparsers.add_parser("truncate", help="Delete all rows from all tables")
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the storage CLI.

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    formatter = OutputFormatter(use_color=not parsed.no_color, json_output=parsed.json)

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        settings = load_config(parsed.config)
    except DBCoreError as e:
        print(formatter.error(str(e)))
        return 1

    configure_logging(app_name="dbcore-storage", config=settings.logging)

    if parsed.timeout is not None:
        settings = settings.model_copy(update={"connect_timeout_seconds": parsed.timeout})

    if parsed.command == "info":
        try:
            return cmd_info(settings, formatter)
        except DBCoreError as e:
            print(formatter.error(str(e)))
            return 1
    return cmd_lifecycle(settings, parsed.command, formatter)


if __name__ == "__main__":
    sys.exit(main())
