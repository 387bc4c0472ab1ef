# src/dbcore/storage/migrations.py
"""
Migration runner for dbcore.

Applies every migration not yet recorded in the ``dbcore_migrations``
bookkeeping table, in the order of the migration set. Design points:

- No transaction wraps the batch. Connections run in autocommit mode and a
  migration that needs a transaction opens its own.
- A failing migration aborts the run with ``MigrationError``. Migrations
  applied before it stay applied; there is no automatic rollback.
- The ``dbcore_migrations_lock`` row is set while a run is in progress. It is
  informational only: a lock found already held is logged and the run goes
  on. Callers must not run migrations concurrently.

Migration sources:
    A directory where each ``*.py`` file defines ``async def up(connection)``
    and each ``*.sql`` file is executed as a script. Files are applied sorted
    by name; the migration name is the file stem (``0001_init``). Files whose
    name starts with ``_`` are ignored.
"""

import importlib.util
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..config.models import BackendKind
from ..exceptions import MigrationError
from ..logging_config import log_display
from .connection import DbConnection
from .schema import (MIGRATIONS_LOCK_TABLE, MIGRATIONS_TABLE, DatabaseSchema,
                     quote_identifier)

logger = logging.getLogger(__name__)

MigrationFn = Callable[[DbConnection], Awaitable[None]]

# Name of the built-in migration that creates the schema tables
INIT_MIGRATION_NAME = "0001_init"

_MIGRATIONS = quote_identifier(MIGRATIONS_TABLE)
_LOCK = quote_identifier(MIGRATIONS_LOCK_TABLE)

BOOKKEEPING_DDL = {
    BackendKind.SQLITE: [
        f"""CREATE TABLE IF NOT EXISTS {_MIGRATIONS} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            batch INTEGER NOT NULL,
            migration_time TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )""",
        f"""CREATE TABLE IF NOT EXISTS {_LOCK} (
            id INTEGER PRIMARY KEY,
            is_locked INTEGER NOT NULL DEFAULT 0
        )""",
    ],
    BackendKind.POSTGRES: [
        f"""CREATE TABLE IF NOT EXISTS {_MIGRATIONS} (
            id SERIAL PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            batch INTEGER NOT NULL,
            migration_time TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )""",
        f"""CREATE TABLE IF NOT EXISTS {_LOCK} (
            id INTEGER PRIMARY KEY,
            is_locked INTEGER NOT NULL DEFAULT 0
        )""",
    ],
}


@dataclass(frozen=True)
class Migration:
    """A named forward schema change."""

    name: str
    up: MigrationFn


def sql_migration(name: str, sql: str) -> Migration:
    """Wrap an SQL script as a migration."""

    async def up(connection: DbConnection) -> None:
        await connection.execute_script(sql)

    return Migration(name=name, up=up)


async def create_schema_tables(connection: DbConnection, schema: DatabaseSchema) -> None:
    for table in schema:
        await connection.execute(table.create_sql(connection.backend))


def schema_migration(schema: DatabaseSchema, name: str = INIT_MIGRATION_NAME) -> Migration:
    """Migration creating every table of ``schema``."""

    async def up(connection: DbConnection) -> None:
        await create_schema_tables(connection, schema)

    return Migration(name=name, up=up)


def _load_python_migration(path: Path) -> Migration:
    spec = importlib.util.spec_from_file_location(f"dbcore_migration_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise MigrationError(path.stem, f"Cannot load migration module {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise MigrationError(path.stem, f"Error importing {path}: {e}", original_error=e) from e

    up = getattr(module, "up", None)
    if up is None or not inspect.iscoroutinefunction(up):
        raise MigrationError(path.stem, f"{path} must define 'async def up(connection)'")
    return Migration(name=path.stem, up=up)


def load_migrations(directory: str | Path) -> List[Migration]:
    """
    Load the ordered migration set found in ``directory``.

    Raises:
        MigrationError: If the directory is missing or a migration is malformed.
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        raise MigrationError("<source>", f"Migration directory not found: {directory}")

    migrations: List[Migration] = []
    for path in sorted(directory.iterdir()):
        if path.name.startswith("_") or not path.is_file():
            continue
        if path.suffix == ".py":
            migrations.append(_load_python_migration(path))
        elif path.suffix == ".sql":
            migrations.append(sql_migration(path.stem, path.read_text(encoding="utf-8")))

    logger.debug(f"Loaded {len(migrations)} migration(s) from {directory}")
    return migrations


def default_migrations() -> List[Migration]:
    """The built-in migration set shipped in ``dbcore/migrations``."""
    from ..migrations import MIGRATIONS_DIR

    return load_migrations(MIGRATIONS_DIR)


class MigrationRunner:
    """Applies outstanding migrations against an established connection."""

    def __init__(self, migrations: Sequence[Migration]):
        names = [m.name for m in migrations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise MigrationError(duplicates[0], f"Duplicate migration name(s): {', '.join(duplicates)}")
        self.migrations = list(migrations)

    async def ensure_bookkeeping_tables(self, connection: DbConnection) -> None:
        for ddl in BOOKKEEPING_DDL[connection.backend]:
            await connection.execute(ddl)
        await connection.execute(
            f"INSERT INTO {_LOCK} (id, is_locked) SELECT 1, 0 "
            f"WHERE NOT EXISTS (SELECT 1 FROM {_LOCK})"
        )

    async def applied_migrations(self, connection: DbConnection) -> List[str]:
        """Names of recorded migrations, in application order."""
        rows = await connection.fetch_all(f"SELECT name FROM {_MIGRATIONS} ORDER BY id ASC")
        return [row["name"] for row in rows]

    async def pending(self, connection: DbConnection) -> List[Migration]:
        await self.ensure_bookkeeping_tables(connection)
        applied = set(await self.applied_migrations(connection))
        return [m for m in self.migrations if m.name not in applied]

    async def _acquire_lock(self, connection: DbConnection) -> bool:
        row = await connection.fetch_one(f"SELECT is_locked FROM {_LOCK} WHERE id = 1")
        if row and row["is_locked"]:
            return False
        await connection.execute(f"UPDATE {_LOCK} SET is_locked = 1 WHERE id = 1")
        return True

    async def _release_lock(self, connection: DbConnection) -> None:
        await connection.execute(f"UPDATE {_LOCK} SET is_locked = 0 WHERE id = 1")

    async def _next_batch(self, connection: DbConnection) -> int:
        row = await connection.fetch_one(f"SELECT MAX(batch) AS batch FROM {_MIGRATIONS}")
        return int(row["batch"]) + 1 if row and row["batch"] is not None else 1

    async def migrate(self, connection: DbConnection) -> List[str]:
        """
        Apply all pending migrations.

        Returns:
            Names of the migrations applied by this call, empty when up to date.

        Raises:
            MigrationError: If a migration fails. Earlier ones remain applied.
        """
        to_apply = await self.pending(connection)
        if not to_apply:
            logger.info("Database schema is up to date.")
            return []

        if not await self._acquire_lock(connection):
            logger.warning("Migration lock is already held; another process may be migrating.")

        applied: List[str] = []
        try:
            batch = await self._next_batch(connection)
            logger.info(f"Applying {len(to_apply)} migration(s) in batch {batch}...")
            for migration in to_apply:
                logger.info(f"Applying migration: {migration.name}")
                try:
                    await migration.up(connection)
                    await connection.execute(
                        f"INSERT INTO {_MIGRATIONS} (name, batch) "
                        f"VALUES ({connection.param}, {connection.param})",
                        (migration.name, batch),
                    )
                except Exception as e:
                    logger.error(f"Migration {migration.name} failed: {e}")
                    raise MigrationError(migration.name, str(e), original_error=e) from e
                applied.append(migration.name)
        finally:
            await self._release_lock(connection)

        log_display(logger, logging.INFO, f"Migrations complete: {', '.join(applied)}")
        return applied


async def migrate(
    connection: DbConnection, migrations: Optional[Sequence[Migration]] = None
) -> List[str]:
    """
    Apply outstanding migrations on ``connection``.

    Args:
        connection: An established connection (see ``connect_with_retry``).
        migrations: Ordered migration set. Defaults to the built-in set.
    """
    if migrations is None:
        migrations = default_migrations()
    return await MigrationRunner(migrations).migrate(connection)
