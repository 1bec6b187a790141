"""Loguru-backed logging service used by the HTTP layer.

Locally the records are forwarded into the stdlib/structlog pipeline so every line shares one
format. Other environments keep loguru's own JSON output. An optional rotating file sink keeps an
audit trail of request and payment events.
"""

import logging
import os
import sys
from enum import StrEnum
from logging import Handler, LogRecord
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger
from pydantic import BaseModel

from tipjar_common.core.config_service import ConfigService


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogConfig(BaseModel):
    level: LogLevel = LogLevel.INFO
    json_format: bool = False
    console_output: bool = True
    file_output: bool = False
    log_file_path: str | None = None
    rotation: str = "20 MB"
    retention: str = "1 week"
    compression: str = "zip"


_COMPRESSION_ALIASES = {"gzip": "gz", "bzip2": "bz2"}


class LoggingService:
    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or self._load_config_from_service()
        self._configure_loguru()

    @staticmethod
    def _using_structlog_bridge() -> bool:
        return os.getenv("APP_ENV", "local").lower() in ("local", "test", "testing")

    @staticmethod
    def _load_config_from_service() -> LogConfig:
        config_service = ConfigService()
        return LogConfig(
            level=LogLevel(str(config_service.get("log_level", "INFO")).upper()),
            json_format=config_service.get("log_json_format", False),
            console_output=config_service.get("log_console_output", True),
            file_output=config_service.get("log_file_output", False),
            log_file_path=config_service.get("log_file_path"),
            rotation=config_service.get("log_rotation", "20 MB"),
            retention=config_service.get("log_retention", "1 week"),
            compression=config_service.get("log_compression", "zip"),
        )

    def _configure_loguru(self) -> None:
        loguru_logger.remove()

        if self._using_structlog_bridge():
            self._configure_structlog_bridge()
        else:
            self._configure_plain_loguru()

        if self.config.file_output and self.config.log_file_path:
            self._configure_file_sink()

    def _configure_structlog_bridge(self) -> None:
        if not self.config.console_output:
            return

        class StructlogForwardHandler(Handler):
            def emit(self, record: LogRecord) -> None:
                logging.getLogger(record.name).handle(record)

        bridge = StructlogForwardHandler()
        bridge.setLevel(self.config.level.value)
        _ = loguru_logger.add(bridge, level=self.config.level.value, backtrace=True, diagnose=False)

    def _configure_plain_loguru(self) -> None:
        if not self.config.console_output:
            return
        if self.config.json_format:
            _ = loguru_logger.add(sys.stdout, format="{message}", level=self.config.level.value, serialize=True)
            return
        _ = loguru_logger.add(
            sys.stdout,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}",
            level=self.config.level.value,
            colorize=True,
        )

    def _configure_file_sink(self) -> None:
        log_path = Path(self.config.log_file_path or "logs/app.log")
        log_path.parent.mkdir(parents=True, exist_ok=True)

        comp_raw = (self.config.compression or "").strip().lower()
        comp_norm = _COMPRESSION_ALIASES.get(comp_raw, comp_raw)
        compression = None if comp_norm in {"none", "false", "0", ""} else comp_norm

        _ = loguru_logger.add(
            str(log_path),
            format="{message}",
            level=self.config.level.value,
            rotation=self.config.rotation,
            retention=self.config.retention,
            compression=compression,
            serialize=True,
        )

    def get_logger(self, name: str) -> "Logger":
        return Logger(name)


class Logger:
    """Wraps the loguru logger; keyword arguments are bound as extra fields."""

    def __init__(self, name: str, bound: Any = None) -> None:
        self.name = name
        self.logger = bound if bound is not None else loguru_logger

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.bind(**kwargs).opt(depth=1).debug(message)

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.bind(**kwargs).opt(depth=1).info(message)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.bind(**kwargs).opt(depth=1).warning(message)

    def error(self, message: str, **kwargs: Any) -> None:
        self.logger.bind(**kwargs).opt(depth=1).error(message)

    def exception(self, message: str, **kwargs: Any) -> None:
        self.logger.bind(**kwargs).opt(depth=1).exception(message)

    def bind(self, **kwargs: Any) -> "Logger":
        return Logger(self.name, self.logger.bind(**kwargs))


logging_service = LoggingService()


def get_logger(name: str) -> Logger:
    """Get a loguru-backed logger for the given module name."""
    return logging_service.get_logger(name)
