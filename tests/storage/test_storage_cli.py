# tests/storage/test_storage_cli.py
"""
Tests for the storage CLI.

Tests cover:
- Command parsing
- Output formatting
- info (no connection)
- check, migrate, drop and truncate against a temporary SQLite file
- Failure exit codes
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from dbcore.config.loader import ENV_PREFIX
from dbcore.storage.cli import OutputFormatter, cmd_info, create_parser, main
from dbcore.config.models import DatabaseSettings, BackendConfig


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch):
    """Keep the environment and the logging singleton out of CLI runs."""
    for field_name in BackendConfig.model_fields:
        monkeypatch.delenv(f"{ENV_PREFIX}{field_name.upper()}", raising=False)
    monkeypatch.delenv("DBCORE_CONFIG", raising=False)
    with patch("dbcore.storage.cli.configure_logging"):
        yield


@pytest.fixture
def formatter():
    return OutputFormatter(use_color=False, json_output=False)


@pytest.fixture
def json_formatter():
    return OutputFormatter(use_color=False, json_output=True)


@pytest.fixture
def sqlite_config_file(tmp_path):
    """A config file pointing at a fresh SQLite database."""
    path = tmp_path / "dbcore.toml"
    path.write_text(
        "[database]\n"
        'kind = "sqlite"\n'
        'name = "cli"\n'
        f'path = "{tmp_path / "cli.sqlite"}"\n'
        "connect_timeout_seconds = 5\n"
        "retry_interval_seconds = 0.01\n"
    )
    return str(path)


@pytest.fixture
def postgres_config_file(tmp_path):
    path = tmp_path / "pg.toml"
    path.write_text(
        "[database]\n"
        'kind = "postgres"\n'
        'name = "joplin"\n'
        'host = "db.internal"\n'
        'user = "joplin"\n'
        'password = "hunter2"\n'
        "retry_interval_seconds = 0.01\n"
    )
    return str(path)


def _json_output(capsys):
    return json.loads(capsys.readouterr().out)


# =============================================================================
# PARSER AND FORMATTER
# =============================================================================

class TestParser:
    """Tests for argument parsing."""

    def test_subcommands(self):
        parser = create_parser()
        for command in ("info", "check", "migrate", "drop", "truncate"):
            assert parser.parse_args([command]).command == command

    def test_global_options(self):
        parsed = create_parser().parse_args(
            ["--config", "x.toml", "--json", "--no-color", "--timeout", "2.5", "check"]
        )
        assert parsed.config == "x.toml"
        assert parsed.json is True
        assert parsed.no_color is True
        assert parsed.timeout == 2.5

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "dbcore-storage" in capsys.readouterr().out


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_plain_symbols(self, formatter):
        assert formatter.success("ok") == "✓ ok"
        assert formatter.error("bad") == "✗ bad"
        assert formatter.warning("hmm") == "⚠ hmm"

    def test_emit_text(self, formatter, capsys):
        formatter.emit({"a": 1}, ["line one", "line two"])
        assert capsys.readouterr().out == "line one\nline two\n"

    def test_emit_json(self, json_formatter, capsys):
        json_formatter.emit({"a": 1}, ["ignored"])
        assert _json_output(capsys) == {"a": 1}


# =============================================================================
# COMMANDS
# =============================================================================

class TestInfo:
    """Tests for the info command."""

    def test_masks_password(self, postgres_config_file, capsys):
        assert main(["--config", postgres_config_file, "--json", "info"]) == 0

        data = _json_output(capsys)
        assert data["connection"]["host"] == "db.internal"
        assert data["connection"]["password"] == "***"
        assert "hunter2" not in json.dumps(data)
        assert data["catalog_tables"] == 12

    def test_text_output(self, formatter, capsys):
        settings = DatabaseSettings(backend=BackendConfig(kind="sqlite", name="dev"))
        assert cmd_info(settings, formatter) == 0
        out = capsys.readouterr().out
        assert "Database Configuration" in out
        assert "db-dev.sqlite" in out

    def test_invalid_backend_config(self, tmp_path, capsys):
        path = tmp_path / "bad.toml"
        path.write_text('[database]\nkind = "postgres"\nname = "x"\n')

        assert main(["--config", str(path), "info"]) == 1
        assert "host" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "absent.toml"), "info"]) == 1
        assert "not found" in capsys.readouterr().out


class TestLifecycleCommands:
    """check, migrate, drop and truncate against SQLite."""

    def test_check_fresh_database(self, sqlite_config_file, capsys):
        assert main(["--config", sqlite_config_file, "--json", "check"]) == 0
        assert _json_output(capsys) == {
            "action": "check", "ready": False, "latest_migration": None,
        }

    def test_migrate_then_check(self, sqlite_config_file, capsys):
        assert main(["--config", sqlite_config_file, "--json", "migrate"]) == 0
        assert _json_output(capsys)["applied"] == ["0001_init"]

        assert main(["--config", sqlite_config_file, "--json", "migrate"]) == 0
        assert _json_output(capsys)["applied"] == []

        assert main(["--config", sqlite_config_file, "--json", "check"]) == 0
        data = _json_output(capsys)
        assert data["ready"] is True
        assert data["latest_migration"] == "0001_init"

    def test_migrate_text_output(self, sqlite_config_file, capsys):
        assert main(["--config", sqlite_config_file, "migrate"]) == 0
        assert "Applied 1 migration(s): 0001_init" in capsys.readouterr().out

    def test_drop_and_truncate_are_repeatable(self, sqlite_config_file, capsys):
        main(["--config", sqlite_config_file, "migrate"])
        capsys.readouterr()

        assert main(["--config", sqlite_config_file, "--json", "truncate"]) == 0
        assert _json_output(capsys)["tables"] == 12
        assert main(["--config", sqlite_config_file, "--json", "drop"]) == 0
        assert _json_output(capsys)["tables"] == 12
        assert main(["--config", sqlite_config_file, "--json", "drop"]) == 0
        assert _json_output(capsys)["tables"] == 0

    def test_unreachable_database_exits_with_error(self, postgres_config_file, capsys):
        refused = AsyncMock(side_effect=ConnectionRefusedError("Connection refused"))
        with patch("dbcore.storage.supervisor.connect_db", refused):
            code = main(["--config", postgres_config_file, "--json", "--timeout", "0.05", "check"])

        assert code == 1
        data = _json_output(capsys)
        assert data["action"] == "check"
        assert "Timeout trying to connect" in data["error"]
        assert "Connection refused" in data["error"]
