# src/dbcore/storage/connection.py
"""
Opaque connection handles for the supported backends.

A ``DbConnection`` wraps one live driver session (``aiosqlite`` for SQLite,
``psycopg`` 3 for PostgreSQL) behind the small surface the lifecycle code
needs: run a statement, run a script, fetch rows, close. Both drivers run in
autocommit mode; nothing here opens a transaction on the caller's behalf.

Every ``connect_db`` call creates a fresh handle owned by the caller, who must
release it with ``disconnect_db`` (or ``close``). Releasing twice is a no-op.
"""

import logging
import pathlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite
import psycopg
from psycopg.rows import dict_row

from ..config.models import BackendKind
from ..exceptions import ConfigError
from .resolver import ConnectionDescriptor

logger = logging.getLogger(__name__)

# Upper bound for a single PostgreSQL connection attempt (libpq connect_timeout)
POSTGRES_CONNECT_TIMEOUT_SECONDS = 10

Params = Optional[Sequence[Any]]


class DbConnection(ABC):
    """A live session to a database backend."""

    backend: BackendKind
    # Positional parameter marker understood by the driver
    param: str = "?"

    def __init__(self, descriptor: ConnectionDescriptor):
        self.descriptor = descriptor
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _log_statement(self, sql: str, params: Params) -> None:
        if self.descriptor.verbose_errors:
            logger.debug(f"[{self.backend.value}] {sql.strip()} params={params!r}")

    @abstractmethod
    async def execute(self, sql: str, params: Params = None) -> None:
        """Execute a single statement."""
        pass

    @abstractmethod
    async def execute_script(self, sql: str) -> None:
        """Execute several ``;``-separated statements."""
        pass

    @abstractmethod
    async def fetch_all(self, sql: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute a query and return all rows as dicts."""
        pass

    async def fetch_one(self, sql: str, params: Params = None) -> Optional[Dict[str, Any]]:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    @abstractmethod
    async def _close(self) -> None:
        pass

    async def close(self) -> None:
        """Release the underlying driver session."""
        if self._closed:
            logger.debug(f"{self!r} already closed.")
            return
        self._closed = True
        await self._close()

    async def __aenter__(self) -> "DbConnection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.descriptor.masked()}>"


class SqliteConnection(DbConnection):
    """Connection to an SQLite database file via aiosqlite."""

    backend = BackendKind.SQLITE
    param = "?"

    def __init__(self, descriptor: ConnectionDescriptor, conn: aiosqlite.Connection):
        super().__init__(descriptor)
        self._conn = conn

    @classmethod
    async def open(cls, descriptor: ConnectionDescriptor) -> "SqliteConnection":
        if not descriptor.filename:
            raise ConfigError("SQLite connection descriptor has no filename.")
        if descriptor.filename != ":memory:":
            pathlib.Path(descriptor.filename).parent.mkdir(parents=True, exist_ok=True)
        # isolation_level=None keeps sqlite3 from opening implicit transactions
        conn = await aiosqlite.connect(descriptor.filename, isolation_level=None)
        return cls(descriptor, conn)

    async def execute(self, sql: str, params: Params = None) -> None:
        self._log_statement(sql, params)
        cursor = await self._conn.execute(sql, tuple(params or ()))
        await cursor.close()

    async def execute_script(self, sql: str) -> None:
        self._log_statement(sql, None)
        await self._conn.executescript(sql)

    async def fetch_all(self, sql: str, params: Params = None) -> List[Dict[str, Any]]:
        self._log_statement(sql, params)
        cursor = await self._conn.execute(sql, tuple(params or ()))
        try:
            rows = await cursor.fetchall()
            if not cursor.description:
                return []
            columns = [col[0] for col in cursor.description]
            return [dict(zip(columns, row)) for row in rows]
        finally:
            await cursor.close()

    async def _close(self) -> None:
        await self._conn.close()


class PostgresConnection(DbConnection):
    """Connection to a PostgreSQL server via psycopg 3 (autocommit)."""

    backend = BackendKind.POSTGRES
    param = "%s"

    def __init__(self, descriptor: ConnectionDescriptor, conn: "psycopg.AsyncConnection[Any]"):
        super().__init__(descriptor)
        self._conn = conn

    @classmethod
    async def open(cls, descriptor: ConnectionDescriptor) -> "PostgresConnection":
        conn = await psycopg.AsyncConnection.connect(
            host=descriptor.host,
            port=descriptor.port,
            user=descriptor.user,
            password=descriptor.password,
            dbname=descriptor.database,
            connect_timeout=POSTGRES_CONNECT_TIMEOUT_SECONDS,
            autocommit=True,
        )
        return cls(descriptor, conn)

    async def execute(self, sql: str, params: Params = None) -> None:
        self._log_statement(sql, params)
        await self._conn.execute(sql, params)

    async def execute_script(self, sql: str) -> None:
        # psycopg accepts several statements in one call when no parameters are bound
        self._log_statement(sql, None)
        await self._conn.execute(sql)

    async def fetch_all(self, sql: str, params: Params = None) -> List[Dict[str, Any]]:
        self._log_statement(sql, params)
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(sql, params)
            if cur.description is None:
                return []
            return [dict(row) for row in await cur.fetchall()]

    async def _close(self) -> None:
        await self._conn.close()


CONNECTION_CLASSES = {
    BackendKind.SQLITE: SqliteConnection,
    BackendKind.POSTGRES: PostgresConnection,
}


async def connect_db(descriptor: ConnectionDescriptor) -> DbConnection:
    """
    Open a new connection for ``descriptor``.

    Driver errors (refused connection, bad credentials, unreadable file) are
    propagated unchanged so the supervisor can retry them.
    """
    connection_cls = CONNECTION_CLASSES.get(descriptor.kind)
    if connection_cls is None:
        raise ConfigError(f"Unsupported database backend: {descriptor.kind!r}")
    connection = await connection_cls.open(descriptor)
    logger.debug(f"Opened {connection!r}")
    return connection


async def disconnect_db(connection: DbConnection) -> None:
    await connection.close()
