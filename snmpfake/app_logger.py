"""
Logging bootstrap for the agent: one rotating log file plus an optional
colored console, configured once per process from the ``logger`` section.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from snmpfake.app_config import ConfigError, ConfigSource

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s [%(threadName)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

# Loggers that are chatty at INFO/DEBUG and drown the agent's own lines
QUIET_LOGGERS = {
    'pysnmp': logging.WARNING,
    'asyncio': logging.WARNING,
    'uvicorn.access': logging.WARNING,
    'uvicorn.error': logging.INFO,
}


def _non_negative_int(section: Mapping[str, Any], name: str, default: int) -> int:
    value = section.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"logger.{name} must be a non-negative integer, got {value!r}", key=f"logger.{name}")
    return value


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    log_dir: Path
    log_file: str = "snmp-agent.log"
    console: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.log_file

    @classmethod
    def from_config(cls, app_config: ConfigSource, level_override: str | None = None) -> "LoggingConfig":
        """Validate the ``logger`` section; bad values raise ConfigError naming the key."""
        section = app_config.get('logger', {}) or {}
        if not isinstance(section, Mapping):
            raise ConfigError(f"Section 'logger' must be a mapping, got {type(section).__name__}", key='logger')

        level = str(level_override or section.get('level', 'INFO')).upper()
        if level not in LEVELS:
            raise ConfigError(f"logger.level must be one of {', '.join(LEVELS)}, got {level!r}", key='logger.level')

        console = section.get('console', True)
        if not isinstance(console, bool):
            raise ConfigError(f"logger.console must be true or false, got {console!r}", key='logger.console')

        max_bytes = _non_negative_int(section, 'max_bytes', cls.max_bytes)
        if max_bytes == 0:
            # RotatingFileHandler never rolls over with maxBytes=0
            raise ConfigError("logger.max_bytes must be positive", key='logger.max_bytes')

        log_file = str(section.get('log_file', cls.log_file)).strip()
        if not log_file:
            raise ConfigError("logger.log_file must not be empty", key='logger.log_file')

        return cls(
            level=level,
            log_dir=Path(os.path.abspath(str(section.get('log_dir', 'logs')))),
            log_file=log_file,
            console=console,
            max_bytes=max_bytes,
            backup_count=_non_negative_int(section, 'backup_count', cls.backup_count),
        )


class ColoredFormatter(logging.Formatter):
    """Console formatter that paints the level name with an ANSI color."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # The record is shared with the file handler; put the plain name back
        plain = record.levelname
        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class AppLogger:
    """Process-wide logging setup. Only the first ``configure`` call takes effect."""

    _configured: bool = False

    @staticmethod
    def configure(app_config: ConfigSource, level_override: str | None = None) -> None:
        """Configure root logging from ``logger.*``; ``level_override`` is the CLI --log-level."""
        if AppLogger._configured:
            return
        AppLogger._install(LoggingConfig.from_config(app_config, level_override))
        AppLogger._configured = True

    @staticmethod
    def get(name: str | None = None) -> logging.Logger:
        return logging.getLogger(name)

    @staticmethod
    def _install(config: LoggingConfig) -> None:
        level = getattr(logging, config.level)
        config.log_dir.mkdir(parents=True, exist_ok=True)

        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.setLevel(level)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(file_handler)

        if config.console:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
            root.addHandler(console_handler)

        for name, quiet_level in QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(quiet_level)
