# src/dbcore/storage/supervisor.py
"""
Connection supervision: connect with a bounded retry and probe readiness.

The database may still be starting when the process comes up (typically
containers started side by side), so ``connect_with_retry`` keeps trying with
a flat one second pause until a wall-clock deadline, 30 seconds by default.
There is no retry count and no backoff growth.

Each attempt owns exactly one connection. If the readiness probe fails, or the
caller cancels, the connection is closed before the failure propagates, so
repeated failures never accumulate open handles.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..config.models import (DEFAULT_CONNECT_TIMEOUT_SECONDS,
                             DEFAULT_RETRY_INTERVAL_SECONDS, BackendConfig)
from ..exceptions import ConnectionTimeoutError, ConnectivityError
from ..logging_config import log_display
from .connection import DbConnection, connect_db, disconnect_db
from .errors import ErrorCategory, classify
from .resolver import ConnectionDescriptor, resolve
from .schema import MIGRATIONS_TABLE, quote_identifier

logger = logging.getLogger(__name__)


@dataclass
class ConnectionCheckResult:
    """
    Outcome of one readiness probe.

    ``connection`` is set if and only if ``error`` is None.
    """

    is_ready: bool
    error: Optional[BaseException] = None
    latest_migration_name: Optional[str] = None
    connection: Optional[DbConnection] = None


async def latest_migration(connection: DbConnection) -> Optional[str]:
    """
    Name of the first recorded migration, or None on a never-initialized database.

    Rows are ordered by ascending id, so this is the *oldest* applied
    migration. The ordering is kept as is for compatibility with existing
    readiness checks.
    """
    try:
        row = await connection.fetch_one(
            f"SELECT name FROM {quote_identifier(MIGRATIONS_TABLE)} ORDER BY id ASC LIMIT 1"
        )
    except Exception as error:
        # A fresh database has no bookkeeping table yet
        if classify(error) is ErrorCategory.TABLE_NOT_FOUND:
            return None
        raise
    return row["name"] if row else None


async def probe(connection: DbConnection) -> ConnectionCheckResult:
    """Check whether ``connection`` is usable and whether the schema has been migrated."""
    try:
        name = await latest_migration(connection)
    except Exception as error:
        return ConnectionCheckResult(is_ready=False, error=error)

    return ConnectionCheckResult(
        is_ready=name is not None,
        error=None,
        latest_migration_name=name,
        connection=connection,
    )


async def _release(connection: DbConnection) -> None:
    try:
        await disconnect_db(connection)
    except Exception as close_error:
        logger.warning(f"Failed to close connection after failed attempt: {close_error}")


async def _attempt(descriptor: ConnectionDescriptor) -> ConnectionCheckResult:
    """
    Open one connection and probe it.

    The connection is closed again on any failure, including cancellation,
    so only a successful result ever carries an open handle.
    """
    connection = await connect_db(descriptor)
    try:
        check = await probe(connection)
        if check.error is not None:
            raise check.error
    except BaseException:
        await _release(connection)
        raise
    return check


async def connect_with_retry(
    config: BackendConfig,
    timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
    *,
    retry_interval: float = DEFAULT_RETRY_INTERVAL_SECONDS,
) -> ConnectionCheckResult:
    """
    Connect to the database described by ``config``, retrying until ``timeout`` seconds elapse.

    Each attempt is cut off at the deadline, so the call fails at most one
    ``retry_interval`` after ``timeout``.

    Args:
        config: Logical backend configuration.
        timeout: Wall-clock deadline in seconds.
        retry_interval: Flat pause between attempts in seconds.

    Returns:
        The successful probe result; its ``connection`` now belongs to the caller.

    Raises:
        ConfigError: Immediately, if ``config`` cannot be resolved.
        ConnectionTimeoutError: Once the deadline passes without a successful probe.
    """
    descriptor = resolve(config)
    deadline = time.monotonic() + timeout
    last_error: Optional[BaseException] = None
    attempt = 0

    while True:
        remaining = deadline - time.monotonic()
        if attempt > 0 and remaining <= 0:
            log_display(logger, logging.ERROR,
                        f"Timeout trying to connect to database. Last error was: {last_error}")
            raise ConnectionTimeoutError(timeout=timeout, last_error=last_error) from last_error

        attempt += 1
        attempt_timeout = asyncio.timeout(remaining)
        try:
            async with attempt_timeout:
                check = await _attempt(descriptor)
            if attempt > 1:
                log_display(logger, logging.INFO, f"Connected to database after {attempt} attempts.")
            return check
        except Exception as error:
            if attempt_timeout.expired():
                # Cut off at the deadline; an earlier driver error says more
                error = last_error or ConnectivityError(
                    f"Connection attempt {attempt} did not complete within {timeout:g}s."
                )
            last_error = error
            logger.warning(
                f"Could not connect to database (attempt {attempt}). Will try again: {error}",
                exc_info=descriptor.verbose_errors,
            )

        await asyncio.sleep(max(0.0, min(retry_interval, deadline - time.monotonic())))
