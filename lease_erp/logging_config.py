"""Logging setup for the dispatch clients and the reference backend."""
from __future__ import annotations

import json
import logging
import os
import sys
import threading
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

_LOGGER_PREFIX = "lease_erp"


class LogContext:
    """Request-scoped fields merged into every structured log line."""

    _endpoint: ContextVar[str | None] = ContextVar("log_endpoint", default=None)
    _mode: ContextVar[str | None] = ContextVar("log_mode", default=None)
    _user_id: ContextVar[str | None] = ContextVar("log_user_id", default=None)

    _FIELD_NAMES = ("endpoint", "mode", "user_id")

    @classmethod
    def get_all(cls) -> dict[str, str]:
        ctx: dict[str, str] = {}
        for name in cls._FIELD_NAMES:
            value = getattr(cls, f"_{name}").get()
            if value is not None:
                ctx[name] = value
        return ctx

    @classmethod
    def bind(cls, **kwargs: Any) -> "_LogContextManager":
        return _LogContextManager(**kwargs)


class _LogContextManager:
    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> type[LogContext]:
        for key, value in self._kwargs.items():
            var = getattr(LogContext, f"_{key}", None)
            if var is not None and value is not None:
                self._tokens[key] = var.set(str(value))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for key, token in self._tokens.items():
            getattr(LogContext, f"_{key}").reset(token)


_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        for key, value in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``lease_erp`` namespace."""

    if name.startswith(_LOGGER_PREFIX):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str | None = None,
    fmt: str | None = None,
    stream: Any = None,
) -> None:
    """Install one stream handler on the package logger (idempotent).

    ``LEASE_LOG_LEVEL`` and ``LEASE_LOG_FORMAT`` (``text`` or ``json``) are
    consulted when the arguments are omitted.
    """

    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    level = level or os.getenv("LEASE_LOG_LEVEL", "INFO")
    fmt = (fmt or os.getenv("LEASE_LOG_FORMAT", "text")).lower()

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)


__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
