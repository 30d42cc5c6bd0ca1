"""
Logging for audit runs.

Every module logs through `get_logger(__name__)`; keyword arguments become
structured fields. Console lines go to stderr as `message | key=value`, the
optional log file gets one JSON object per line.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

ROOT_LOGGER_NAME = "delivery_audit"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        log_entry.update(getattr(record, "extra_data", None) or {})
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable formatter that appends structured fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            pairs = " ".join(f"{k}={v}" for k, v in extra_data.items())
            line = f"{line} | {pairs}"
        return line


class StructuredLogger:
    """`logging.Logger` facade taking structured fields as keyword arguments; None values are dropped."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_extra(self, level: int, message: str, **kwargs):
        extra_data = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, extra={"extra_data": extra_data})

    def info(self, message: str, **kwargs):
        self._log_with_extra(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_extra(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_extra(logging.ERROR, message, **kwargs)


# Third-party loggers kept at WARNING so HTTP / gRPC chatter stays out of the summary
_QUIET_LOGGERS = ("aiohttp", "google")


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None, enable_console: bool = True) -> None:
    """Configure the `delivery_audit` logger tree for one CLI run.

    Console output goes to stderr; stdout is reserved for the report summary.
    `log_file` adds a size-rotated JSON log.
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stderr,
            "formatter": "console",
            "level": log_level,
        }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "json",
            "level": log_level,
        }

    names = list(handlers)
    loggers: Dict[str, Dict[str, Any]] = {
        ROOT_LOGGER_NAME: {"level": log_level, "handlers": names, "propagate": False},
    }
    for quiet in _QUIET_LOGGERS:
        loggers[quiet] = {"level": "WARNING", "handlers": names, "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "console": {
                "()": KeyValueFormatter,
                "fmt": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": names},
    })


def get_logger(name: str) -> StructuredLogger:
    """Logger under the `delivery_audit` tree; bare names such as "audit" are prefixed."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return StructuredLogger(name)
    return StructuredLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Record the outcome of an audit run (counts, flags) on the `audit` logger."""
    get_logger("audit").info(f"Audit event: {event_type}", event_type=event_type, **details)


def log_performance(operation: str, duration_ms: float, additional_data: Optional[Dict[str, Any]] = None) -> None:
    """Record how long `operation` took on the `performance` logger."""
    fields: Dict[str, Any] = {"duration_ms": round(duration_ms, 1)}
    fields.update(additional_data or {})
    get_logger("performance").info(f"Performance: {operation}", operation=operation, **fields)
