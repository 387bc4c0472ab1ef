"""Create every table of the default schema."""

from dbcore.storage.migrations import create_schema_tables
from dbcore.storage.schema import DEFAULT_SCHEMA


async def up(connection):
    await create_schema_tables(connection, DEFAULT_SCHEMA)
