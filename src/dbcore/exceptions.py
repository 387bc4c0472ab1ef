# src/dbcore/exceptions.py
"""
Custom exceptions for the dbcore library.

This module defines the error taxonomy of the connection lifecycle:
configuration problems are fatal, connectivity problems are retried until a
deadline, and migration failures abort startup. Errors raised by the database
drivers themselves (``sqlite3.Error``, ``psycopg.Error``) are never wrapped
unless noted below; they propagate to the caller unchanged.
"""

from typing import Optional


class DBCoreError(Exception):
    """Base class for all dbcore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in dbcore."):
        super().__init__(message)

class ConfigError(DBCoreError):
    """Raised for unsupported backends or missing required configuration fields."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class StorageError(DBCoreError):
    """Base class for errors related to database storage operations."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class ConnectivityError(StorageError):
    """Raised when the database cannot be reached. Usually transient during startup."""
    def __init__(self, message: str = "Could not connect to database."):
        super().__init__(message)

class ConnectionTimeoutError(ConnectivityError):
    """
    Raised when no usable connection could be established before the deadline.
    The last underlying failure is kept on ``last_error``.
    """
    def __init__(self, timeout: float = 0.0, last_error: Optional[BaseException] = None):
        self.timeout = timeout
        self.last_error = last_error
        last_message = str(last_error) if last_error is not None else ""
        super().__init__(
            f"Timeout trying to connect to database after {timeout:g}s. "
            f"Last error was: {last_message}"
        )

class MigrationError(StorageError):
    """
    Raised when a migration cannot be loaded or fails while being applied.
    Migrations applied before the failing one are not rolled back.
    """
    def __init__(self, migration_name: str = "Unknown", message: str = "Migration failed.",
                 original_error: Optional[BaseException] = None):
        self.migration_name = migration_name
        self.original_error = original_error
        super().__init__(f"Migration '{migration_name}' failed: {message}")
