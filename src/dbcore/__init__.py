# src/dbcore/__init__.py
"""
dbcore - database connection lifecycle management for SQLite and PostgreSQL.

Resolves a backend-specific connection descriptor, connects with a bounded
retry, applies pending schema migrations and resets schemas (drop/truncate)
while tolerating "table does not exist" errors from either backend.
"""

from importlib.metadata import PackageNotFoundError, version

from .api import Database
from .config import BackendConfig, BackendKind, DatabaseSettings, load_config
from .exceptions import (
    ConfigError,
    ConnectionTimeoutError,
    ConnectivityError,
    DBCoreError,
    MigrationError,
    StorageError,
)
from .storage import (
    ConnectionCheckResult,
    ConnectionDescriptor,
    DatabaseSchema,
    ErrorCategory,
    Migration,
    TableCatalog,
    classify,
    connect_with_retry,
    drop_all_tables,
    migrate,
    probe,
    resolve,
    truncate_all_tables,
)

try:
    __version__ = version("dbcore")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BackendConfig",
    "BackendKind",
    "ConfigError",
    "ConnectionCheckResult",
    "ConnectionDescriptor",
    "ConnectionTimeoutError",
    "ConnectivityError",
    "DBCoreError",
    "Database",
    "DatabaseSchema",
    "DatabaseSettings",
    "ErrorCategory",
    "Migration",
    "MigrationError",
    "StorageError",
    "TableCatalog",
    "classify",
    "connect_with_retry",
    "drop_all_tables",
    "load_config",
    "migrate",
    "probe",
    "resolve",
    "truncate_all_tables",
]
