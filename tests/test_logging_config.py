# tests/test_logging_config.py
"""
Tests for the dbcore.logging_config module.

Tests the LoggingManager singleton, the display filter, file handlers
and component log levels.
"""

import logging
from pathlib import Path

import pytest

from dbcore.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    LoggingManager,
    configure_logging,
    get_log_file_path,
    log_display,
    set_component_level,
)


@pytest.fixture
def reset_logging_manager():
    """Reset the logging manager singleton between tests."""
    if LoggingManager._instance is not None:
        LoggingManager._instance.reset()
    LoggingManager._instance = None
    LoggingManager._configured = False
    LoggingManager._log_file_path = None
    yield
    if LoggingManager._instance is not None:
        LoggingManager._instance.reset()
    LoggingManager._instance = None


def _record(level=logging.INFO, display=None):
    record = logging.LogRecord("dbcore.test", level, __file__, 1, "message", None, None)
    if display is not None:
        record.display = display
    return record


class TestDefaultLoggingConfig:
    """Tests for default logging configuration."""

    def test_console_disabled_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False

    def test_file_disabled_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is False

    def test_components_defined(self):
        components = DEFAULT_LOGGING_CONFIG["components"]
        assert "dbcore" in components
        assert "aiosqlite" in components
        assert "psycopg" in components


class TestDisplayFilter:
    """Tests for DisplayFilter gating."""

    def test_blocks_plain_records_when_console_disabled(self):
        assert DisplayFilter(console_globally_enabled=False).filter(_record()) is False

    def test_passes_display_records_when_console_disabled(self):
        assert DisplayFilter(console_globally_enabled=False).filter(_record(display=True)) is True

    def test_display_records_respect_min_level(self):
        display_filter = DisplayFilter(display_min_level=logging.WARNING)
        assert display_filter.filter(_record(logging.INFO, display=True)) is False
        assert display_filter.filter(_record(logging.WARNING, display=True)) is True

    def test_passes_everything_when_console_enabled(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record()) is True


class TestLoggingManager:
    """Tests for the LoggingManager singleton."""

    def test_singleton_pattern(self, reset_logging_manager):
        assert LoggingManager() is LoggingManager()
        assert LoggingManager.get_instance() is LoggingManager()

    def test_is_configured_initially_false(self, reset_logging_manager):
        assert LoggingManager.is_configured() is False


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_only_returns_none(self, reset_logging_manager):
        result = configure_logging(config={"console_enabled": True})
        assert result is None
        assert LoggingManager.is_configured() is True

    def test_per_run_file(self, reset_logging_manager, tmp_path):
        result = configure_logging(
            app_name="svc",
            config={"file_enabled": True, "file_directory": str(tmp_path)},
        )
        assert isinstance(result, Path)
        assert result.parent == tmp_path
        assert result.name.startswith("svc_")
        assert get_log_file_path() == result

    def test_single_rotating_file(self, reset_logging_manager, tmp_path):
        result = configure_logging(
            app_name="svc",
            config={"file_enabled": True, "file_directory": str(tmp_path), "file_mode": "single"},
        )
        assert result == tmp_path / "svc.log"

    def test_configure_is_idempotent(self, reset_logging_manager, tmp_path):
        first = configure_logging(config={"file_enabled": True, "file_directory": str(tmp_path)})
        second = configure_logging(config={"file_enabled": False})
        assert second == first

    def test_reconfigure_replaces_own_handlers_only(self, reset_logging_manager):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            configure_logging(config={})
            configure_logging(config={}, force_reconfigure=True)
            assert foreign in root.handlers
            assert len(LoggingManager()._handlers) == 1
        finally:
            root.removeHandler(foreign)

    def test_component_levels(self, reset_logging_manager):
        configure_logging(config={"components": {"dbcore.test_component": "ERROR"}})
        assert logging.getLogger("dbcore.test_component").level == logging.ERROR


class TestHelpers:
    """Tests for module-level helpers."""

    def test_log_display_sets_flag_and_keeps_extra(self):
        logger = logging.getLogger("dbcore.test_display")
        captured = []

        class _Capture(logging.Handler):
            def emit(self, record):
                captured.append(record)

        handler = _Capture()
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            log_display(logger, logging.INFO, "Ready %s", "now", extra={"request_id": "r1"})
        finally:
            logger.removeHandler(handler)

        assert captured[0].display is True
        assert captured[0].request_id == "r1"
        assert captured[0].getMessage() == "Ready now"

    def test_set_component_level(self):
        set_component_level("dbcore.test_level", "warning")
        assert logging.getLogger("dbcore.test_level").level == logging.WARNING
