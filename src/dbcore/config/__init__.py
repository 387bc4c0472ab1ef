# src/dbcore/config/__init__.py
"""
Configuration module for the dbcore library.

Configuration files:
    - ./dbcore.toml
    - User config: ~/.config/dbcore/config.toml
    - Custom config: path in $DBCORE_CONFIG or passed to load_config()

Environment variables:
    - Prefix: DBCORE_DB_ (e.g. DBCORE_DB_KIND, DBCORE_DB_HOST)
"""

from .loader import load_config
from .models import BackendConfig, BackendKind, DatabaseSettings

__all__ = ["BackendConfig", "BackendKind", "DatabaseSettings", "load_config"]
