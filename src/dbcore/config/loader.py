# src/dbcore/config/loader.py
"""
Configuration loading for dbcore.

Settings come from three layers, later layers winning:

1. A TOML file (``[database]`` and ``[logging]`` sections)
2. An explicit dictionary passed by the caller
3. ``DBCORE_DB_*`` environment variables for the backend fields

Example file::

    [database]
    kind = "postgres"
    name = "joplin"
    host = "localhost"
    port = 5432
    user = "joplin"
    password = "secret"
    connect_timeout_seconds = 30

    [logging]
    console_enabled = true
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import BackendConfig, DatabaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "DBCORE_DB_"
CONFIG_ENV_VAR = "DBCORE_CONFIG"

# Keys of the [database] section that tune the lifecycle rather than describe the backend
_SETTINGS_KEYS = {"connect_timeout_seconds", "retry_interval_seconds", "migrations_dir"}


def default_config_paths() -> list[Path]:
    """Locations searched for a config file when none is given explicitly."""
    paths = [
        Path.cwd() / "dbcore.toml",
        Path.home() / ".config" / "dbcore" / "config.toml",
    ]
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.insert(0, Path(env_path).expanduser())
    return paths


def find_config_file() -> Optional[Path]:
    for path in default_config_paths():
        if path.exists():
            logger.debug(f"Found config at: {path}")
            return path
    return None


def load_toml_file(path: str | Path) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Raises:
        ConfigError: If the file does not exist or is not valid TOML.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {path}: {e}") from e


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect backend fields from ``DBCORE_DB_*`` variables (e.g. ``DBCORE_DB_HOST``)."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for field_name in BackendConfig.model_fields:
        value = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in override take precedence. Nested dictionaries are merged recursively.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: Optional[str | Path] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DatabaseSettings:
    """
    Build validated ``DatabaseSettings``.

    Args:
        config_path: TOML file to read. When None, the default locations are
            searched and a missing file simply means "use defaults".
        config_dict: Full config mapping (with ``database``/``logging`` keys)
            applied on top of the file.
        environ: Environment mapping, defaults to ``os.environ``.

    Returns:
        The validated settings.

    Raises:
        ConfigError: On unreadable files or values that fail validation.
    """
    raw: Dict[str, Any] = {}
    if config_path is not None:
        raw = load_toml_file(config_path)
    else:
        found = find_config_file()
        if found is not None:
            raw = load_toml_file(found)

    if config_dict:
        raw = _deep_merge(raw, config_dict)

    database_section = dict(raw.get("database", {}))
    settings_data: Dict[str, Any] = {
        key: database_section.pop(key) for key in list(database_section) if key in _SETTINGS_KEYS
    }
    backend_data = {**database_section, **env_overrides(environ)}

    try:
        return DatabaseSettings(
            backend=BackendConfig(**backend_data),
            logging=raw.get("logging", {}),
            **settings_data,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid database configuration: {e}") from e
