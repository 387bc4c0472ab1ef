# src/dbcore/storage/reset.py
"""
Whole-schema reset: drop or truncate every table in a catalog.

Both operations are idempotent. Tables that do not exist are skipped, which
makes them safe on a partially initialized database and when called twice in
a row. Any other error aborts the remaining iteration and propagates as is.

No foreign-key ordering is applied; the schema has no enforced cross-table
constraints. Callers must hold exclusive access to the schema.
"""

import logging

from ..config.models import BackendKind
from .connection import DbConnection
from .errors import ErrorCategory, classify
from .schema import TableCatalog, quote_identifier

logger = logging.getLogger(__name__)

TRUNCATE_TEMPLATES = {
    BackendKind.SQLITE: "DELETE FROM {table}",
    BackendKind.POSTGRES: "TRUNCATE TABLE {table}",
}


async def _run_for_each_table(connection: DbConnection, catalog: TableCatalog,
                              template: str, action: str) -> int:
    done = 0
    for table_name in catalog:
        try:
            await connection.execute(template.format(table=quote_identifier(table_name)))
        except Exception as error:
            if classify(error) is ErrorCategory.TABLE_NOT_FOUND:
                logger.debug(f"Skipping {action} of missing table '{table_name}'")
                continue
            raise
        done += 1
    logger.info(f"{action.capitalize()}: {done}/{len(catalog)} table(s) affected.")
    return done


async def drop_all_tables(connection: DbConnection, catalog: TableCatalog) -> int:
    """
    Drop every table of ``catalog``, including the migration bookkeeping tables.

    Returns:
        Number of tables actually dropped.
    """
    return await _run_for_each_table(connection, catalog, "DROP TABLE {table}", "drop")


async def truncate_all_tables(connection: DbConnection, catalog: TableCatalog) -> int:
    """
    Delete all rows from every table of ``catalog``.

    Returns:
        Number of tables actually truncated.
    """
    template = TRUNCATE_TEMPLATES[connection.backend]
    return await _run_for_each_table(connection, catalog, template, "truncate")
