# tests/storage/conftest.py
"""
Pytest configuration and fixtures for storage tests.

SQLite tests run against real database files in a temporary directory.
PostgreSQL integration tests are opt-in and only run when a server is
configured through environment variables:

    DBCORE_TEST_PG_HOST: PostgreSQL host (tests skipped when unset)
    DBCORE_TEST_PG_PORT: PostgreSQL port (default: 5432)
    DBCORE_TEST_PG_USER: PostgreSQL user (default: postgres)
    DBCORE_TEST_PG_PASSWORD: PostgreSQL password (default: postgres)
    DBCORE_TEST_PG_DATABASE: PostgreSQL database (default: dbcore_test)

Usage:
    DBCORE_TEST_PG_HOST=localhost pytest tests/storage/
"""

import os
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio

from dbcore.config.models import BackendConfig, BackendKind
from dbcore.storage.connection import DbConnection, connect_db
from dbcore.storage.resolver import resolve


# =============================================================================
# POSTGRESQL CONFIGURATION
# =============================================================================

def get_pg_config() -> Dict[str, Any]:
    return {
        "kind": BackendKind.POSTGRES,
        "host": os.environ.get("DBCORE_TEST_PG_HOST"),
        "port": int(os.environ.get("DBCORE_TEST_PG_PORT", "5432")),
        "user": os.environ.get("DBCORE_TEST_PG_USER", "postgres"),
        "password": os.environ.get("DBCORE_TEST_PG_PASSWORD", "postgres"),
        "name": os.environ.get("DBCORE_TEST_PG_DATABASE", "dbcore_test"),
    }


def should_skip_pg_tests() -> bool:
    return not os.environ.get("DBCORE_TEST_PG_HOST")


def pytest_collection_modifyitems(config, items):
    """Skip PostgreSQL tests unless a server is configured."""
    if should_skip_pg_tests():
        skip_pg = pytest.mark.skip(reason="DBCORE_TEST_PG_HOST not set")
        for item in items:
            if "requires_postgres" in item.keywords:
                item.add_marker(skip_pg)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def sqlite_config(tmp_path) -> BackendConfig:
    """SQLite backend config pointing at a fresh temporary file."""
    return BackendConfig(kind="sqlite", name="test", path=str(tmp_path / "db-test.sqlite"))


@pytest.fixture
def pg_config() -> BackendConfig:
    return BackendConfig(**get_pg_config())


@pytest_asyncio.fixture
async def sqlite_connection(sqlite_config) -> AsyncGenerator[DbConnection, None]:
    """An open connection to an empty SQLite database."""
    connection = await connect_db(resolve(sqlite_config))
    yield connection
    await connection.close()


