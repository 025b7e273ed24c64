"""Structured logging for transcript-filer.

Provides configurable logging with:
- Verbosity levels mapped from CLI flags
- Text or JSON records with structured ``extra`` fields
- Optional file handler for audit trails
- Bound context on loggers and temporary record context
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "transcript_filer"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


class LogLevel(IntEnum):
    """Log verbosity levels."""

    QUIET = 0  # Only errors
    NORMAL = 1  # Errors + warnings
    VERBOSE = 2  # Plus load and replacement summaries
    DEBUG = 3  # Plus per-mapping decisions


_LEVEL_MAP = {
    LogLevel.QUIET: logging.ERROR,
    LogLevel.NORMAL: logging.WARNING,
    LogLevel.VERBOSE: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


@dataclass
class LogConfig:
    """Configuration for logging.

    Attributes:
        level: Verbosity level
        log_file: Optional path to log file
        json_format: Emit one JSON object per record
        include_timestamp: Include timestamp in records
        include_context: Include structured extra fields
        color: Use ANSI colors on a terminal
    """

    level: LogLevel = LogLevel.NORMAL
    log_file: Path | None = None
    json_format: bool = False
    include_timestamp: bool = True
    include_context: bool = True
    color: bool = True


class Colors:
    """ANSI color codes."""

    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """Formatter that renders records as text lines or JSON objects."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED,
    }

    def __init__(
        self,
        json_format: bool = False,
        include_timestamp: bool = True,
        include_context: bool = True,
        color: bool = True,
    ):
        super().__init__()
        self.json_format = json_format
        self.include_timestamp = include_timestamp
        self.include_context = include_context
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _paint(self, text: str, color: str) -> str:
        if not self.color:
            return text
        return f"{color}{text}{Colors.RESET}"

    def _format_json(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if self.include_timestamp:
            data["timestamp"] = datetime.fromtimestamp(record.created).isoformat()

        if self.include_context:
            extra = {}
            for key, value in _extra_fields(record).items():
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
            if extra:
                data["context"] = extra

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data)

    def _format_text(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(self._paint(timestamp, Colors.GRAY))

        level = record.levelname.upper()[:5].ljust(5)
        parts.append(self._paint(level, self.LEVEL_COLORS.get(record.levelno, Colors.RESET)))

        # Keep the dotted tail, which names the component
        name = record.name
        if len(name) > 24:
            name = "..." + name[-21:]
        parts.append(self._paint(f"{name:>24}", Colors.CYAN))

        parts.append(record.getMessage())
        result = " | ".join(parts)

        if self.include_context:
            extra = _extra_fields(record)
            if extra:
                context_str = " ".join(f"{k}={v}" for k, v in extra.items())
                result += " " + self._paint(f"[{context_str}]", Colors.GRAY)

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


class FilerLogger(logging.Logger):
    """Logger that merges bound context into every record's extra fields."""

    def __init__(self, name: str, level: int = logging.NOTSET):
        super().__init__(name, level)
        self._context: dict[str, Any] = {}

    def with_context(self, **context: Any) -> "FilerLogger":
        """Return a logger that adds ``context`` to every record.

        Example:
            log = logger.with_context(project="quarterly")
            log.info("Routing transcript")
        """
        bound = FilerLogger(self.name, self.level)
        bound.parent = self.parent
        bound.handlers = self.handlers
        bound.propagate = self.propagate
        bound._context = {**self._context, **context}
        return bound

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
    ) -> None:
        merged_extra = {**self._context, **(extra or {})}
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=merged_extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


_config: LogConfig = LogConfig()
_initialized: bool = False


def configure_logging(config: LogConfig | None = None) -> None:
    """Configure the ``transcript_filer`` logger hierarchy.

    Args:
        config: Logging configuration; the current one is reused when omitted
    """
    global _config, _initialized

    if config:
        _config = config

    logging.setLoggerClass(FilerLogger)

    log_level = _LEVEL_MAP[_config.level]
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        StructuredFormatter(
            json_format=_config.json_format,
            include_timestamp=_config.include_timestamp,
            include_context=_config.include_context,
            color=_config.color and sys.stderr.isatty(),
        )
    )
    root_logger.addHandler(console_handler)

    if _config.log_file:
        _config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(_config.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            StructuredFormatter(
                json_format=_config.json_format,
                include_timestamp=True,
                include_context=True,
                color=False,
            )
        )
        root_logger.addHandler(file_handler)
        # The file always gets everything
        root_logger.setLevel(logging.DEBUG)

    _initialized = True


def get_logger(name: str) -> FilerLogger:
    """Get a logger for the given name (usually ``__name__``)."""
    if not _initialized:
        configure_logging()

    logger = logging.getLogger(name)
    if not isinstance(logger, FilerLogger):
        # Created before our logger class was installed
        custom_logger = FilerLogger(name)
        custom_logger.parent = logging.getLogger(ROOT_LOGGER_NAME)
        custom_logger.level = logger.level
        return custom_logger

    return logger


def set_verbosity(level: LogLevel) -> None:
    """Set global verbosity level."""
    _config.level = level
    configure_logging(_config)


def enable_file_logging(log_file: Path) -> None:
    """Also write every record to ``log_file``."""
    _config.log_file = log_file
    configure_logging(_config)


class LogContext:
    """Context manager that stamps fields onto every record created inside it.

    Example:
        with LogContext(source_file="memo.m4a"):
            processor.process(context)
    """

    def __init__(self, **context: Any):
        self.context = context
        self._old_factory = None

    def __enter__(self) -> "LogContext":
        self._old_factory = logging.getLogRecordFactory()
        old_factory = self._old_factory
        context = self.context

        def factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        if self._old_factory:
            logging.setLogRecordFactory(self._old_factory)


def log_operation_start(logger: logging.Logger, operation: str, **context: Any) -> None:
    """Log the start of an operation."""
    logger.info(f"Starting: {operation}", extra=context)


def log_operation_complete(
    logger: logging.Logger,
    operation: str,
    duration: float | None = None,
    **context: Any,
) -> None:
    """Log the completion of an operation.

    Args:
        logger: Logger to use
        operation: Operation name
        duration: Optional duration in seconds
        **context: Additional context
    """
    if duration is not None:
        context["duration_ms"] = round(duration * 1000, 2)
    logger.info(f"Completed: {operation}", extra=context)


def log_operation_failed(
    logger: logging.Logger,
    operation: str,
    error: Exception,
    **context: Any,
) -> None:
    """Log a failed operation with the error type and message."""
    context["error_type"] = type(error).__name__
    context["error_message"] = str(error)
    logger.error(f"Failed: {operation}", extra=context)
