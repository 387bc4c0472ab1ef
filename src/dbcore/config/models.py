# src/dbcore/config/models.py
"""
Pydantic models for dbcore configuration validation.

``BackendConfig`` is the logical description of a database supplied by the
process owner. It is immutable once built; the storage layer turns it into a
backend-specific ``ConnectionDescriptor`` (see ``dbcore.storage.resolver``).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_POSTGRES_PORT = 5432
DEFAULT_CONNECT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_INTERVAL_SECONDS = 1.0


class BackendKind(str, Enum):
    """Supported database backends."""

    SQLITE = "sqlite"  # Embedded, file based
    POSTGRES = "postgres"  # Client/server


class BackendConfig(BaseModel):
    """
    Logical backend configuration.

    For SQLite only ``name`` (and optionally ``path``) matter. For PostgreSQL
    the network and credential fields are copied verbatim into the
    connection descriptor.
    """

    model_config = ConfigDict(frozen=True)

    kind: BackendKind = Field(BackendKind.SQLITE, description="Database backend")
    name: str = Field("prod", description="Logical database name")
    host: str | None = Field(None, description="Server host (postgres)")
    port: int = Field(DEFAULT_POSTGRES_PORT, description="Server port (postgres)")
    user: str | None = Field(None, description="User name (postgres)")
    password: str | None = Field(None, description="Password (postgres)", repr=False)
    path: str | None = Field(
        None, description="Explicit database file path, overrides the name-based path (sqlite)"
    )
    verbose_errors: bool = Field(
        False, description="Log full tracebacks for connection and probe failures"
    )

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, value: Any) -> Any:
        """Accept the driver names used by other tools as aliases."""
        if isinstance(value, str):
            value = value.strip().lower()
            aliases = {"sqlite3": "sqlite", "pg": "postgres", "postgresql": "postgres"}
            return aliases.get(value, value)
        return value


class DatabaseSettings(BaseModel):
    """Top-level ``[database]`` settings: the backend plus lifecycle tuning."""

    model_config = ConfigDict(frozen=True)

    backend: BackendConfig = Field(default_factory=BackendConfig)
    connect_timeout_seconds: float = Field(
        DEFAULT_CONNECT_TIMEOUT_SECONDS, gt=0, description="Deadline for connect_with_retry"
    )
    retry_interval_seconds: float = Field(
        DEFAULT_RETRY_INTERVAL_SECONDS, gt=0, description="Flat pause between attempts"
    )
    migrations_dir: str | None = Field(
        None, description="Directory of migration files; the built-in set is used when unset"
    )
    logging: dict[str, Any] = Field(default_factory=dict)
