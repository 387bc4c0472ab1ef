# src/dbcore/storage/schema.py
"""
Static schema configuration and the table catalog derived from it.

The schema is a mapping of table name to column definitions. It is built once
at startup and passed explicitly to whatever needs it; nothing here is
mutated after construction. Column types are only interpreted by the
built-in ``0001_init`` migration when it creates the tables.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Mapping, Sequence, Tuple

from ..config.models import BackendKind

# Bookkeeping tables owned by the migration runner
MIGRATIONS_TABLE = "dbcore_migrations"
MIGRATIONS_LOCK_TABLE = "dbcore_migrations_lock"
BOOKKEEPING_TABLES: Tuple[str, str] = (MIGRATIONS_TABLE, MIGRATIONS_LOCK_TABLE)


class ColumnType(str, Enum):
    """Semantic column types."""

    STRING = "string"
    NUMBER = "number"
    ANY = "any"


# ColumnType -> backend SQL type
SQL_TYPES: Mapping[BackendKind, Mapping[ColumnType, str]] = {
    BackendKind.SQLITE: {
        ColumnType.STRING: "TEXT",
        ColumnType.NUMBER: "INTEGER",
        ColumnType.ANY: "BLOB",
    },
    BackendKind.POSTGRES: {
        ColumnType.STRING: "TEXT",
        ColumnType.NUMBER: "BIGINT",
        ColumnType.ANY: "BYTEA",
    },
}


def quote_identifier(name: str) -> str:
    """Double-quote an SQL identifier (valid for both SQLite and PostgreSQL)."""
    return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    type: ColumnType


@dataclass(frozen=True)
class TableDefinition:
    name: str
    columns: Tuple[ColumnDefinition, ...]

    def create_sql(self, backend: BackendKind) -> str:
        """``CREATE TABLE IF NOT EXISTS`` statement for ``backend``; ``id`` becomes the primary key."""
        types = SQL_TYPES[backend]
        parts = []
        for column in self.columns:
            part = f"{quote_identifier(column.name)} {types[column.type]}"
            if column.name == "id":
                part += " PRIMARY KEY"
            parts.append(part)
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(self.name)} ({', '.join(parts)})"


@dataclass(frozen=True)
class DatabaseSchema:
    """Ordered, immutable collection of table definitions."""

    tables: Tuple[TableDefinition, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, str]]) -> "DatabaseSchema":
        """
        Build a schema from ``{table: {column: type}}``.

        Types may be given as ``ColumnType`` members or their string values.
        """
        tables = []
        for table_name, columns in data.items():
            tables.append(
                TableDefinition(
                    name=table_name,
                    columns=tuple(
                        ColumnDefinition(name=column_name, type=ColumnType(column_type))
                        for column_name, column_type in columns.items()
                    ),
                )
            )
        return cls(tables=tuple(tables))

    @property
    def table_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tables)

    def __iter__(self) -> Iterator[TableDefinition]:
        return iter(self.tables)


@dataclass(frozen=True)
class TableCatalog:
    """All table names a reset operation must visit, without duplicates."""

    names: Tuple[str, ...]

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "TableCatalog":
        # dict.fromkeys keeps first-seen order while removing duplicates
        return cls(names=tuple(dict.fromkeys(names)))

    @classmethod
    def from_schema(cls, schema: DatabaseSchema) -> "TableCatalog":
        return cls.from_names(list(schema.table_names) + list(BOOKKEEPING_TABLES))

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names


_TIMESTAMPS = {"updated_time": "string", "created_time": "string"}

DEFAULT_SCHEMA = DatabaseSchema.from_dict({
    "users": {
        "id": "string", "email": "string", "password": "string",
        "full_name": "string", "is_admin": "number", **_TIMESTAMPS,
    },
    "sessions": {
        "id": "string", "user_id": "string", "auth_code": "string", **_TIMESTAMPS,
    },
    "permissions": {
        "id": "string", "user_id": "string", "item_type": "number", "item_id": "string",
        "can_read": "number", "can_write": "number", **_TIMESTAMPS,
    },
    "files": {
        "id": "string", "owner_id": "string", "name": "string", "content": "any",
        "mime_type": "string", "size": "number", "is_directory": "number",
        "is_root": "number", "parent_id": "string", **_TIMESTAMPS,
        "source_file_id": "string", "content_type": "number", "content_id": "string",
    },
    "changes": {
        "counter": "number", "id": "string", "owner_id": "string", "item_type": "number",
        "parent_id": "string", "item_id": "string", "item_name": "string",
        "type": "number", **_TIMESTAMPS,
    },
    "api_clients": {
        "id": "string", "name": "string", "secret": "string", **_TIMESTAMPS,
    },
    "notifications": {
        "id": "string", "owner_id": "string", "level": "number", "key": "string",
        "message": "string", "read": "number", "canBeDismissed": "number", **_TIMESTAMPS,
    },
    "shares": {
        "id": "string", "owner_id": "string", "file_id": "string", "type": "number",
        **_TIMESTAMPS, "folder_id": "string",
    },
    "share_users": {
        "id": "string", "share_id": "string", "user_id": "string",
        "is_accepted": "number", **_TIMESTAMPS,
    },
    "joplin_file_contents": {
        "id": "string", "owner_id": "string", "item_id": "string", "parent_id": "string",
        "type": "number", **_TIMESTAMPS, "encryption_applied": "number", "content": "any",
    },
})

DEFAULT_CATALOG = TableCatalog.from_schema(DEFAULT_SCHEMA)
