# src/dbcore/storage/errors.py
"""
Backend-agnostic classification of database driver errors.

The two backends report a missing table differently: PostgreSQL uses the
SQLSTATE ``42P01`` (undefined_table) while SQLite only says so in the
message (``no such table: dbcore_migrations``). All string and code matching
lives here so that adding a backend touches only this module.
"""

from enum import Enum
from typing import Optional

POSTGRES_UNDEFINED_TABLE = "42P01"
SQLITE_NO_SUCH_TABLE = "no such table: "


class ErrorCategory(str, Enum):
    """Semantic category of a backend error."""

    TABLE_NOT_FOUND = "table_not_found"
    OTHER = "other"


def _error_code(error: BaseException) -> Optional[str]:
    # psycopg 3 exposes ``sqlstate``; psycopg2 and some wrappers use ``pgcode`` or ``code``
    for attr in ("sqlstate", "pgcode", "code"):
        code = getattr(error, attr, None)
        if isinstance(code, str):
            return code
    return None


def classify(error: Optional[BaseException]) -> ErrorCategory:
    """
    Map an error raised by a database driver to an ``ErrorCategory``.

    Anything that is not recognised as a missing table is ``OTHER``; callers
    must re-raise those unchanged.
    """
    if error is None:
        return ErrorCategory.OTHER

    if _error_code(error) == POSTGRES_UNDEFINED_TABLE:
        return ErrorCategory.TABLE_NOT_FOUND

    if SQLITE_NO_SUCH_TABLE in str(error):
        return ErrorCategory.TABLE_NOT_FOUND

    return ErrorCategory.OTHER


def is_no_such_table_error(error: Optional[BaseException]) -> bool:
    return classify(error) is ErrorCategory.TABLE_NOT_FOUND
