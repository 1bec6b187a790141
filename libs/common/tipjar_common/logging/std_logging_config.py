from __future__ import annotations

import atexit
import os
import sys
from collections.abc import Iterable
from contextvars import ContextVar
from datetime import datetime
from enum import Enum
from logging import Filter, Handler, LogRecord
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from typing import Any, cast
from uuid import UUID

import structlog
from pydantic import BaseModel
from structlog.typing import EventDict, Processor, WrappedLogger

from tipjar_common.core.request_context import RequestContext
from tipjar_common.utils.msgspec import encode_json
from tipjar_common.utils.utils import is_dict

# Never written to any sink
_EXCLUDED_KEYS = {
    "api_key",
    "secret_key",
    "webhook_secret",
    "jwt_secret",
    "client_secret",
    "authorization",
    "password",
    "stripe_signature",
    "account_number",
}
_active_handler_name = "standard"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in {"true", "1", "t", "yes"}


def _get_formatter_name() -> str:
    """Compact JSON outside local/dev for log parsers; human-readable lines locally unless LOG_JSON_FORMAT is set."""
    app_env = os.getenv("APP_ENV", "local").lower()
    if app_env not in ("development", "local", "test", "testing"):
        return "json"
    if _env_flag("LOG_JSON_FORMAT"):
        return "json_pretty" if _env_flag("LOG_JSON_PRETTY") else "json"
    return "plain"


class LoggingQueueListener(QueueListener):
    """Custom ``QueueListener`` which starts and stops the listening process."""

    def __init__(self, queue: Queue[LogRecord], *handlers: Handler, respect_handler_level: bool = False) -> None:
        super().__init__(queue, *handlers, respect_handler_level=respect_handler_level)
        self.start()
        _ = atexit.register(self.stop)


def _process_values(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> EventDict:
    """Inject the request context, drop secrets and None values, and flatten models, enums and UUIDs."""
    request_context = RequestContext.get_or_none()
    if request_context is not None:
        event_dict["requestContext"] = request_context

    for key, value in list(event_dict.items()):
        _process_value(event_dict, key, value)

    return event_dict


def _process_value(event_dict: dict[str, Any], key: str, value: Any) -> None:
    if key in _EXCLUDED_KEYS or value is None:
        event_dict.pop(key, None)
        return

    processed_value = value
    if isinstance(value, ContextVar):
        processed_value = value.get(None)  # type: ignore
        if processed_value is None:
            event_dict.pop(key, None)
            return
    elif isinstance(value, BaseModel):
        processed_value = value.model_dump(exclude_none=True, by_alias=True, mode="json")
    elif isinstance(value, Enum):
        processed_value = value.value
    elif isinstance(value, UUID):
        processed_value = str(value)

    if is_dict(processed_value):
        for k, v in list(processed_value.items()):
            _process_value(processed_value, k, v)

    event_dict[key] = processed_value


def json_serializer(value: EventDict, **_: Any) -> str:
    return encode_json(value).decode("utf-8")


def _ensure_event_dict(_logger: WrappedLogger, _name: str, event_dict: Any) -> EventDict:
    """Stdlib loggers may pass pre-formatted strings as record.msg; wrap those in an event dict."""
    if isinstance(event_dict, dict):
        return cast(EventDict, event_dict)
    return {"event": "" if event_dict is None else str(event_dict)}


class NoHealthFilter(Filter):
    def filter(self, record: LogRecord) -> bool:
        return "GET /health" not in record.getMessage()


_CONSOLE_HIDDEN_FIELDS = {"filename", "func_name", "lineno", "pathname", "module", "process", "thread", "color_message", "message"}

_LEVEL_COLORS = {
    "DEBUG": "\033[90m",
    "INFO": "\033[92m",
    "WARNING": "\033[93m",
    "ERROR": "\033[91m",
    "CRITICAL": "\033[1m\033[91m",
}


def _human_readable_renderer(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> str:
    """Render `HH:MM:SS [LEVEL] logger message (key=value, ...)`, colored when writing to a terminal."""
    use_colors = hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
    reset, gray, cyan = ("\033[0m", "\033[90m", "\033[96m") if use_colors else ("", "", "")

    for field in _CONSOLE_HIDDEN_FIELDS:
        event_dict.pop(field, None)

    level_str = str(event_dict.pop("level", "info")).upper()
    level_color = _LEVEL_COLORS.get(level_str, "") if use_colors else ""
    timestamp = str(event_dict.pop("timestamp", ""))
    logger_name = str(event_dict.pop("logger", ""))
    event = str(event_dict.pop("event", ""))
    exception = event_dict.pop("exception", None)

    short_time = timestamp
    if timestamp:
        try:
            short_time = datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%H:%M:%S")
        except ValueError:
            pass

    parts = [f"{gray}{short_time}{reset}", f"{level_color}[{level_str:<5}]{reset}", f"{cyan}{logger_name[-20:]:<20}{reset}", event]

    extra_parts: list[str] = []
    for key, value in event_dict.items():
        if isinstance(value, dict):
            value_str = encode_json(value).decode("utf-8")
        elif isinstance(value, (list, tuple)):
            value_str = ", ".join(str(item) for item in cast(Iterable[Any], value))
        else:
            value_str = str(value)
        extra_parts.append(f"{key}={value_str}")

    result = " ".join(parts)
    if extra_parts:
        result += f" {gray}({', '.join(extra_parts)}){reset}"
    if exception:
        result += f"\n{level_color}{exception}{reset}"
    return result


class SafeProcessorFormatter(structlog.stdlib.ProcessorFormatter):
    """ProcessorFormatter that ensures record.msg is always a dict before formatting."""

    def format(self, record: LogRecord) -> str:
        if not isinstance(record.msg, dict):
            record.msg = {"event": str(record.msg)}
        return super().format(record)


class StdLoggingConfig:
    foreign_pre_chain_processors: list[Processor] = [
        _ensure_event_dict,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _process_values,
    ]

    structlog_processors = [*foreign_pre_chain_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter]

    json_renderer: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(sort_keys=True, default=json_serializer, indent=None),
    ]

    json_renderer_pretty: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(sort_keys=True, default=json_serializer, indent=2),
    ]

    console_renderer: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.format_exc_info,
        _human_readable_renderer,
    ]

    formatters = {
        "json": {
            "()": SafeProcessorFormatter,
            "processors": json_renderer,
            "foreign_pre_chain": foreign_pre_chain_processors,
        },
        "json_pretty": {
            "()": SafeProcessorFormatter,
            "processors": json_renderer_pretty,
            "foreign_pre_chain": foreign_pre_chain_processors,
        },
        "plain": {
            "()": SafeProcessorFormatter,
            "processors": console_renderer,
            "foreign_pre_chain": foreign_pre_chain_processors,
        },
    }

    filters = {
        "no_health": {
            "()": NoHealthFilter,
        },
    }

    logger_factory = structlog.stdlib.LoggerFactory()

    handlers: dict[str, Any] = {}


def _get_handlers() -> dict[str, Any]:
    formatter = _get_formatter_name()

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "stream": sys.stdout,
            "formatter": formatter,
            "filters": ["no_health"],
        }
    }

    if formatter == "json_pretty":
        # Multi-line output is written synchronously to keep entries from interleaving
        handlers["standard"] = dict(handlers["console"])
    else:
        handlers["standard"] = {
            "class": QueueHandler,
            "level": "INFO",
            "listener": LoggingQueueListener,
            "handlers": ["console"],
            "filters": ["no_health"],
        }

    return handlers


StdLoggingConfig.handlers = _get_handlers()


def _quiet_logger(level: str, *, filtered: bool = False) -> dict[str, Any]:
    config: dict[str, Any] = {"handlers": [_active_handler_name], "propagate": False, "level": level}
    if filtered:
        config["filters"] = ["no_health"]
    return config


common_logger_config: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": True,
    "formatters": StdLoggingConfig.formatters,
    "handlers": StdLoggingConfig.handlers,
    "root": {
        "handlers": [_active_handler_name],
        "level": "INFO",
    },
    "filters": StdLoggingConfig.filters,
    "loggers": {
        "botocore": _quiet_logger("ERROR"),
        "urllib3": _quiet_logger("INFO"),
        "httpx": _quiet_logger("ERROR"),
        "stripe": _quiet_logger("WARNING"),
        "sqlalchemy.engine": _quiet_logger("WARNING"),
        "uvicorn": _quiet_logger("INFO", filtered=True),
        "uvicorn.error": _quiet_logger("INFO", filtered=True),
        "uvicorn.access": _quiet_logger("WARNING", filtered=True),
    },
}
