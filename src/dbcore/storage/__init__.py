# src/dbcore/storage/__init__.py
"""
Storage lifecycle module for the dbcore library.

Resolves connection descriptors, connects with bounded retry, applies
migrations and resets schemas on SQLite and PostgreSQL.
"""

from .connection import (DbConnection, PostgresConnection, SqliteConnection,
                         connect_db, disconnect_db)
from .errors import ErrorCategory, classify, is_no_such_table_error
from .migrations import (INIT_MIGRATION_NAME, Migration, MigrationRunner,
                         create_schema_tables, default_migrations,
                         load_migrations, migrate, schema_migration,
                         sql_migration)
from .reset import drop_all_tables, truncate_all_tables
from .resolver import ConnectionDescriptor, resolve, sqlite_file_path
from .schema import (BOOKKEEPING_TABLES, DEFAULT_CATALOG, DEFAULT_SCHEMA,
                     MIGRATIONS_LOCK_TABLE, MIGRATIONS_TABLE, ColumnType,
                     DatabaseSchema, TableCatalog)
from .supervisor import (ConnectionCheckResult, connect_with_retry,
                         latest_migration, probe)

__all__ = [
    "BOOKKEEPING_TABLES",
    "DEFAULT_CATALOG",
    "DEFAULT_SCHEMA",
    "INIT_MIGRATION_NAME",
    "MIGRATIONS_LOCK_TABLE",
    "MIGRATIONS_TABLE",
    "ColumnType",
    "ConnectionCheckResult",
    "ConnectionDescriptor",
    "DatabaseSchema",
    "DbConnection",
    "ErrorCategory",
    "Migration",
    "MigrationRunner",
    "PostgresConnection",
    "SqliteConnection",
    "TableCatalog",
    "classify",
    "connect_db",
    "connect_with_retry",
    "create_schema_tables",
    "default_migrations",
    "disconnect_db",
    "drop_all_tables",
    "is_no_such_table_error",
    "latest_migration",
    "load_migrations",
    "migrate",
    "probe",
    "resolve",
    "schema_migration",
    "sql_migration",
    "sqlite_file_path",
    "truncate_all_tables",
]
