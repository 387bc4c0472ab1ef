# src/dbcore/logging_config.py
"""
Logging configuration for dbcore and the applications embedding it.

Configuration is the ``[logging]`` section of the dbcore config file (see
``dbcore.config.loader``) or a dictionary passed directly, and supports:

- Console logging gated by ``DisplayFilter``
- Optional file logging, one timestamped file per run or a single rotating file
- Per-component log level overrides

**Display filter**: When ``console_enabled=False`` (the default), the console
handler still exists but only passes records carrying
``extra={"display": True}``. Startup messages such as "Waiting for database..."
therefore reach the operator while driver chatter stays out of the terminal.

Usage:
    from dbcore.logging_config import configure_logging, log_display

    configure_logging(app_name="myservice", config={"console_enabled": True})

    logger = logging.getLogger("myservice.startup")
    log_display(logger, logging.INFO, "Database ready at %s", host)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/dbcore/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "dbcore": "INFO",
        "aiosqlite": "WARNING",
        "psycopg": "WARNING",
        "asyncio": "WARNING",
    },
}


def _level(value: str | int, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    When the console is globally enabled every record passes and the
    handler's own level does the filtering. Otherwise only records with
    ``record.display = True`` at or above ``display_min_level`` pass.
    """

    def __init__(self, console_globally_enabled: bool = False,
                 display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class LoggingManager:
    """
    Singleton owning the handlers dbcore installs on the root logger.

    Only handlers created here are removed on reconfiguration, so handlers
    added by the host application (or by pytest) survive.
    """

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None

    def __new__(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._handlers = []
        return cls._instance

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        return cls()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    def configure(self, app_name: str = "dbcore", config: dict[str, Any] | None = None,
                  force_reconfigure: bool = False) -> Path | None:
        """
        Install console and file handlers according to ``config``.

        Returns:
            Path of the log file, or None when file logging is disabled.
        """
        if LoggingManager._configured and not force_reconfigure:
            return LoggingManager._log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled", False))
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(log_config["console_format"]))
        # With the console "off" the filter is the only gate
        console.setLevel(
            _level(log_config["console_level"], logging.WARNING) if console_enabled else logging.DEBUG
        )
        console.addFilter(DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_level(log_config["display_min_level"], logging.INFO),
        ))
        self._add_handler(console)

        log_file_path = None
        if log_config.get("file_enabled"):
            file_handler, log_file_path = self._create_file_handler(log_config, app_name)
            if file_handler is not None:
                self._add_handler(file_handler)

        for component_name, level_str in log_config.get("components", {}).items():
            logging.getLogger(component_name).setLevel(_level(level_str, logging.INFO))

        LoggingManager._configured = True
        LoggingManager._log_file_path = log_file_path
        if log_file_path:
            logging.getLogger(__name__).debug(f"Logging configured. Log file: {log_file_path}")
        return log_file_path

    def _add_handler(self, handler: logging.Handler) -> None:
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def _create_file_handler(self, config: dict[str, Any],
                             app_name: str) -> tuple[logging.Handler | None, Path | None]:
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode", "per_run") == "single":
                log_file_path = log_dir / config["file_single_name"].format(app=app_name)
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
            else:
                log_file_path = log_dir / config["file_name_pattern"].format(
                    app=app_name, timestamp=datetime.now()
                )
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config["file_level"], logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, log_file_path

    def reset(self) -> None:
        """Remove dbcore's handlers and forget the configuration."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        LoggingManager._configured = False
        LoggingManager._log_file_path = None


def configure_logging(app_name: str = "dbcore", config: dict[str, Any] | None = None,
                      force_reconfigure: bool = False) -> Path | None:
    """Configure logging once per process. See ``DEFAULT_LOGGING_CONFIG`` for keys."""
    return LoggingManager.get_instance().configure(
        app_name=app_name, config=config, force_reconfigure=force_reconfigure
    )


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log a message that also reaches the console when it is otherwise silent.

    The ``extra`` kwarg is merged, not replaced.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    return LoggingManager.get_log_file_path()


def set_component_level(component: str, level: str | int) -> None:
    logging.getLogger(component).setLevel(_level(level, logging.INFO))
