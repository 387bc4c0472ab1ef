# src/dbcore/api.py
"""
High-level entry point tying the connection lifecycle together.

Typical startup::

    settings = load_config()
    async with await Database.create(settings) as db:
        await db.migrate()
        ...
"""

import logging
from typing import List, Optional, Sequence

from .config.models import DatabaseSettings
from .exceptions import StorageError
from .storage.connection import DbConnection, disconnect_db
from .storage.migrations import (INIT_MIGRATION_NAME, Migration,
                                 default_migrations, load_migrations, migrate,
                                 schema_migration)
from .storage.reset import drop_all_tables, truncate_all_tables
from .storage.schema import DEFAULT_SCHEMA, DatabaseSchema, TableCatalog
from .storage.supervisor import ConnectionCheckResult, connect_with_retry, probe

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one supervised connection plus the static schema it operates on.

    Use ``Database.create()``; the constructor does not connect.
    """

    _settings: DatabaseSettings
    _schema: DatabaseSchema
    _catalog: TableCatalog
    _migrations: Optional[List[Migration]]
    _connection: Optional[DbConnection]
    _last_check: Optional[ConnectionCheckResult]

    def __init__(
        self,
        settings: DatabaseSettings,
        schema: DatabaseSchema = DEFAULT_SCHEMA,
        migrations: Optional[Sequence[Migration]] = None,
    ):
        self._settings = settings
        self._schema = schema
        self._catalog = TableCatalog.from_schema(schema)
        self._migrations = list(migrations) if migrations is not None else None
        self._connection = None
        self._last_check = None

    @classmethod
    async def create(
        cls,
        settings: DatabaseSettings,
        schema: DatabaseSchema = DEFAULT_SCHEMA,
        migrations: Optional[Sequence[Migration]] = None,
    ) -> "Database":
        """Wait for the database to become reachable and return a connected instance."""
        instance = cls(settings, schema, migrations)
        await instance.connect()
        return instance

    async def connect(self) -> ConnectionCheckResult:
        if self._connection is not None:
            raise StorageError("Database is already connected.")
        check = await connect_with_retry(
            self._settings.backend,
            self._settings.connect_timeout_seconds,
            retry_interval=self._settings.retry_interval_seconds,
        )
        self._connection = check.connection
        self._last_check = check
        logger.info(
            f"Database connected (ready={check.is_ready}, "
            f"latest migration={check.latest_migration_name})"
        )
        return check

    @property
    def connection(self) -> DbConnection:
        if self._connection is None:
            raise StorageError("Database is not connected.")
        return self._connection

    @property
    def catalog(self) -> TableCatalog:
        return self._catalog

    @property
    def schema(self) -> DatabaseSchema:
        return self._schema

    @property
    def last_check(self) -> Optional[ConnectionCheckResult]:
        return self._last_check

    def _resolve_migrations(self) -> List[Migration]:
        """
        Migration set for ``migrate()``.

        Explicit migrations win, then ``settings.migrations_dir``. Otherwise the
        built-in set is used with its ``0001_init`` step creating this
        instance's schema, so migrate and reset act on the same tables.
        """
        if self._migrations is not None:
            return self._migrations
        if self._settings.migrations_dir:
            return load_migrations(self._settings.migrations_dir)
        migrations = default_migrations()
        if self._schema is DEFAULT_SCHEMA:
            return migrations
        return [
            schema_migration(self._schema) if m.name == INIT_MIGRATION_NAME else m
            for m in migrations
        ]

    async def migrate(self) -> List[str]:
        return await migrate(self.connection, self._resolve_migrations())

    async def check(self) -> ConnectionCheckResult:
        """Re-run the readiness probe on the held connection."""
        self._last_check = await probe(self.connection)
        return self._last_check

    async def drop_tables(self) -> int:
        return await drop_all_tables(self.connection, self._catalog)

    async def truncate_tables(self) -> int:
        return await truncate_all_tables(self.connection, self._catalog)

    async def close(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        await disconnect_db(connection)
        logger.info("Database connection closed.")

    async def __aenter__(self) -> "Database":
        if self._connection is None:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
