# src/dbcore/migrations/__init__.py
"""Built-in migration set, applied in file name order."""

from pathlib import Path

MIGRATIONS_DIR = Path(__file__).parent
