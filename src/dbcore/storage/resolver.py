# src/dbcore/storage/resolver.py
"""
Turns a logical ``BackendConfig`` into a backend-specific connection descriptor.

Resolution is a pure function of its input: the same config always yields an
equal descriptor. Reachability is not checked here; that is the job of
``dbcore.storage.supervisor``.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from ..config.models import BackendConfig, BackendKind
from ..exceptions import ConfigError

DEFAULT_SQLITE_DIR = "~/.local/share/dbcore"


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Backend-specific connection parameters derived from a BackendConfig."""

    kind: BackendKind
    filename: Optional[str] = None  # SQLite
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    database: Optional[str] = None
    verbose_errors: bool = False

    def masked(self) -> dict:
        """Descriptor fields suitable for display, with the password hidden."""
        data = {
            "kind": self.kind.value,
            "filename": self.filename,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": "***" if self.password else None,
            "database": self.database,
        }
        return {k: v for k, v in data.items() if v is not None}


def sqlite_file_path(name: str, directory: str = DEFAULT_SQLITE_DIR) -> str:
    """Path of the SQLite file backing the logical database ``name``."""
    return os.path.join(os.path.expanduser(directory), f"db-{name}.sqlite")


def resolve(config: BackendConfig) -> ConnectionDescriptor:
    """
    Resolve ``config`` into a ``ConnectionDescriptor``.

    Raises:
        ConfigError: For unsupported backend kinds or missing required fields.
    """
    if not config.name:
        raise ConfigError("Database 'name' must not be empty.")

    if config.kind == BackendKind.SQLITE:
        filename = (
            os.path.expanduser(config.path) if config.path else sqlite_file_path(config.name)
        )
        return ConnectionDescriptor(
            kind=BackendKind.SQLITE,
            filename=filename,
            verbose_errors=config.verbose_errors,
        )

    if config.kind == BackendKind.POSTGRES:
        missing = [f for f in ("host", "user") if not getattr(config, f)]
        if missing:
            raise ConfigError(
                f"PostgreSQL configuration is missing required field(s): {', '.join(missing)}"
            )
        return ConnectionDescriptor(
            kind=BackendKind.POSTGRES,
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=config.name,
            verbose_errors=config.verbose_errors,
        )

    raise ConfigError(f"Unsupported database backend: {config.kind!r}")
