"""
Structured Logging: JSON-Formatted with Resource Context

Provides:
- JSON-formatted log output
- Context propagation (bucket, key, resource kind) via contextvars
- Log level filtering
- Environment-driven setup from LibraryConfig

Boundary calls log at DEBUG (acquire/release) and WARNING (implicit aborts),
so an application normally sees nothing unless it opts in.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Optional, TextIO

from uplink.core.config import LibraryConfig


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


# Context variable for operation-scoped fields
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message", "asctime",
})


@dataclass
class LogRecord:
    """Structured log record."""
    timestamp: str
    level: str
    message: str
    logger_name: str
    extra: dict[str, Any] = field(default_factory=dict)
    
    def to_json(self) -> str:
        """Serialize to JSON."""
        data = {
            "@timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "logger": self.logger_name,
        }
        data.update(self.extra)
        return json.dumps(data, default=str)


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter merging context fields and record extras.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        extra = current_context()
        
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                extra[key] = value
        
        if record.exc_info:
            extra["exception"] = self.formatException(record.exc_info)
        
        log_record = LogRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=record.levelname,
            message=record.getMessage(),
            logger_name=record.name,
            extra=extra,
        )
        
        return log_record.to_json()


class StructuredLogger:
    """
    Structured logger with context propagation.
    
    Usage:
        logger = StructuredLogger("uplink.transfer")
        
        with logger.context(bucket="photos", key="cat.jpg"):
            logger.info("Upload committed")
    """
    
    __slots__ = ("_logger", "_default_extra")
    
    def __init__(
        self,
        name: str,
        level: Optional[LogLevel] = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level.value)
        self._default_extra: dict[str, Any] = {}
    
    @property
    def name(self) -> str:
        return self._logger.name
    
    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)
    
    def info(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, **kwargs)
    
    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)
    
    def error(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.ERROR, message, **kwargs)
    
    def critical(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.CRITICAL, message, **kwargs)
    
    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level.value):
            return
        exc_info = kwargs.pop("exc_info", None)
        extra = {**self._default_extra, **kwargs}
        self._logger.log(level.value, message, extra=extra, exc_info=exc_info)
    
    def with_extra(self, **kwargs: Any) -> StructuredLogger:
        """Create child logger with additional default fields."""
        new_logger = StructuredLogger(self._logger.name)
        new_logger._default_extra = {**self._default_extra, **kwargs}
        return new_logger
    
    @staticmethod
    def context(**kwargs: Any) -> _LogContext:
        """Context manager for operation-scoped fields."""
        return _LogContext(kwargs)


class _LogContext:
    """Context manager for adding fields to all logs."""
    
    __slots__ = ("_fields", "_token")
    
    def __init__(self, fields: dict[str, Any]) -> None:
        self._fields = fields
        self._token = None
    
    def __enter__(self) -> _LogContext:
        new_context = {**_log_context.get(), **self._fields}
        self._token = _log_context.set(new_context)
        return self
    
    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def current_context() -> dict[str, Any]:
    """Snapshot of the fields currently attached to every log line."""
    return dict(_log_context.get())


def setup_logging(
    level: LogLevel = LogLevel.WARNING,
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the ``uplink`` logger hierarchy.
    
    Only the package logger is touched; the application's root logger
    keeps its own handlers.
    
    Args:
        level: Minimum log level
        json_output: Use JSON formatting
        stream: Output stream (default: stderr)
    """
    package_logger = logging.getLogger("uplink")
    package_logger.setLevel(level.value)
    
    package_logger.handlers.clear()
    
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level.value)
    
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))
    
    package_logger.addHandler(handler)
    package_logger.propagate = False


def configure_from_env(stream: Optional[TextIO] = None) -> LibraryConfig:
    """
    Apply UPLINK_LOG_LEVEL / UPLINK_LOG_JSON and return the loaded config.
    
    Raises:
        ValueError: If the environment holds an invalid configuration
    """
    loaded = LibraryConfig.from_env()
    if loaded.is_err():
        raise ValueError(loaded.error)
    config = loaded.unwrap()
    if config.log_level not in LogLevel.__members__:
        raise ValueError(f"Unknown log level {config.log_level!r}")
    setup_logging(
        level=LogLevel[config.log_level],
        json_output=config.log_json,
        stream=stream,
    )
    return config
