"""Structured logging for backup, import and CLI runs.

Every line carries the service name and, while a run is in progress, the
run's correlation id, so the output of one scheduled backup or one CLI
command can be picked out of a shared log. Callers pass structured fields
as keyword arguments:

    logger = get_logger(__name__)
    logger.info("Backup file written", path=str(path))
"""

import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import IO, Any

# Run id of the backup/import/command currently executing
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

DEFAULT_SERVICE_NAME = "linguacrm-backup"

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "apscheduler", "httpx")


def new_correlation_id() -> str:
    """Short random run id."""
    return uuid.uuid4().hex[:12]


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Tag log lines emitted inside the block with a run id.

    An id already set by an enclosing run is reused so nested operations
    (a CLI command that triggers a backup) share one id.
    """
    run_id = correlation_id or correlation_id_ctx.get() or new_correlation_id()
    token = correlation_id_ctx.set(run_id)
    try:
        yield run_id
    finally:
        correlation_id_ctx.reset(token)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, service, logger, message, correlation_id (when
    a run is active), the caller's extra fields, exception text, and for
    ERROR and above the source location.
    """

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if run_id := correlation_id_ctx.get():
            payload["correlation_id"] = run_id
        payload.update(_extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.levelno >= logging.ERROR:
            payload["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Terminal-friendly lines.

    ``2024-05-01 09:30:00 - service - LEVEL - [run id] - message key=value``
    """

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        parts = [
            f"{stamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id_ctx.get() or '-'}] - {record.getMessage()}"
        ]
        parts.extend(f"{key}={value}" for key, value in _extra_fields(record).items())
        line = " ".join(parts)

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
    stream: IO[str] | None = None,
) -> None:
    """Send all logging to one stream in the chosen format.

    Replaces any handlers already on the root logger, so calling it again
    (as every CLI invocation does) reconfigures rather than duplicates.

    Args:
        log_format: ``json`` or ``text``.
        log_level: Root level name; unknown names fall back to INFO.
        service_name: Value of the ``service`` field.
        stream: Destination; stdout when omitted. The CLI passes stderr so
            command output on stdout stays machine-readable.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter_cls = JsonFormatter if log_format.lower() == "json" else TextFormatter
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter_cls(service_name=service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class StructuredLogger:
    """``logging.Logger`` facade taking structured fields as keywords."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, fields: dict[str, Any], **kwargs) -> None:
        extra = {"extra_fields": fields} if fields else None
        self._logger.log(level, msg, extra=extra, stacklevel=3, **kwargs)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """ERROR with the active exception's traceback attached."""
        self._log(logging.ERROR, msg, fields, exc_info=True)


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module; pass ``__name__``."""
    return StructuredLogger(name)
