"""
Logging Configuration for the VideoHub API.

Development runs get color-coded, human-readable lines; every other
environment gets one JSON object per line. Each record carries the
correlation id of the request that produced it.

Key Components:
- `CorrelationFilter`: Copies the current request's correlation id onto each
  log record.
- `StructuredFormatter`: JSON lines, with caller-supplied `extra` fields
  nested under `"extra"`.
- `ColoredConsoleFormatter`: Level-colored lines for local development.
- `get_logging_config` / `setup_logging`: Build and apply the `dictConfig`
  from `ENVIRONMENT`, `LOG_LEVEL` and `LOG_FILE`.
- `log_function_call`: Decorator logging entry, exit, duration and failure of
  sync or async callables.

Architectural Design:
- The correlation id lives in a `ContextVar`, so concurrent requests on the
  same event loop never see each other's ids.
- Application loggers are grouped under the top-level package names (`api`,
  `services`, `core`, `providers`) so one entry configures each layer.
"""

import os
import json
import asyncio
import functools
import logging
import logging.config
import time
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from contextvars import ContextVar

# Context variable for request correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

SERVICE_NAME = "videohub-api"
APP_LOGGERS = ("api", "services", "core", "providers", "main")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Attributes every LogRecord has; anything else was passed through `extra`
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
    "correlation_id",
}


class CorrelationFilter(logging.Filter):
    """Filter that adds correlation ID to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        return True


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "correlation_id", None)
        if request_id:
            entry["correlation_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            error_type, error, _ = record.exc_info
            entry["exception"] = {
                "type": error_type.__name__,
                "message": str(error),
                "traceback": self.formatException(record.exc_info),
            }

        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Level-colored console lines for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s%(request_tag)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "correlation_id", None)
        record.request_tag = f" [{request_id}]" if request_id else ""
        line = super().format(record)
        color = self.COLORS.get(record.levelname)
        return f"{color}{line}{self.RESET}" if color else line


def _handler(formatter: str, level: str, **options: Any) -> Dict[str, Any]:
    return {"level": level, "formatter": formatter, "filters": ["correlation"], **options}


def get_logging_config() -> Dict[str, Any]:
    """Build the dictConfig for the current ENVIRONMENT"""

    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    console_format = "colored_console" if environment == "development" else "structured"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": _handler(
            console_format, log_level, **{"class": "logging.StreamHandler", "stream": "ext://sys.stdout"}
        ),
    }
    app_handlers: List[str] = ["console"]

    log_file = os.getenv("LOG_FILE")
    if environment == "production" and log_file:
        handlers["file"] = _handler(
            "structured",
            log_level,
            **{
                "class": "logging.handlers.RotatingFileHandler",
                "filename": log_file,
                "maxBytes": LOG_FILE_MAX_BYTES,
                "backupCount": LOG_FILE_BACKUPS,
            },
        )
        app_handlers.append("file")

    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": log_level, "handlers": list(app_handlers), "propagate": False}
        for name in APP_LOGGERS
    }
    for server_logger in ("uvicorn", "uvicorn.access"):
        loggers[server_logger] = {"level": "INFO", "handlers": ["console"], "propagate": False}
    loggers["sqlalchemy.engine"] = {"level": "WARNING", "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"correlation": {"()": CorrelationFilter}},
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "colored_console": {"()": ColoredConsoleFormatter},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": list(app_handlers)},
    }


def setup_logging():
    """Initialize logging configuration"""
    logging.config.dictConfig(get_logging_config())

    logger = logging.getLogger("core.logging")
    environment = os.getenv("ENVIRONMENT", "development")
    logger.info(f"Logging initialized for {environment} environment")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name"""
    return logging.getLogger(name)


def set_correlation_id(corr_id: Optional[str]):
    """Set correlation ID for the current context"""
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from the current context"""
    return correlation_id.get()


def log_function_call(logger: logging.Logger):
    """Decorator to log function calls with execution time"""

    def decorator(func):
        def _completed(start_time: float):
            logger.debug(
                f"Completed {func.__name__}",
                extra={
                    "call": func.__qualname__,
                    "execution_time_ms": round((time.time() - start_time) * 1000, 2),
                    "success": True,
                },
            )

        def _failed(start_time: float, error: Exception):
            # 4xx domain errors are logged by the error handlers
            expected = hasattr(error, "status_code") and error.status_code < 500
            logger.log(
                logging.DEBUG if expected else logging.ERROR,
                f"Failed {func.__name__}: {error}",
                extra={
                    "call": func.__qualname__,
                    "execution_time_ms": round((time.time() - start_time) * 1000, 2),
                    "success": False,
                    "error_type": type(error).__name__,
                },
                exc_info=not expected,
            )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            logger.debug(f"Calling {func.__name__}", extra={"call": func.__qualname__})
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _failed(start_time, e)
                raise
            _completed(start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            logger.debug(f"Calling {func.__name__}", extra={"call": func.__qualname__})
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(start_time, e)
                raise
            _completed(start_time)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
