"""
Player Ledger Logging

Purpose
-------
Structured, async-safe logging for ledger operations.

Every record passes through a bounded queue (`QueueHandler` on the caller's
side, `QueueListener` thread on the other) so a slow sink never blocks the
event loop. A filter stamps each record with the operation context bound by
`LogContext`: the account being mutated, the caller, the operation name and
a short correlation id shared by everything one lifecycle call logs.

Output
------
- production (or LOG_JSON=true): one JSON object per line
- otherwise: a single human-readable line with account and operation inline
- LOG_TO_FILE=true adds a daily-rotated JSON file under LOGS_DIR

Public API
----------
get_logger, LogContext, set_log_context, get_log_context,
clear_log_context, get_logging_health, setup_logging, shutdown_logging
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from player_ledger.core.config.config import Config

_operation_context: ContextVar[Dict[str, Any]] = ContextVar("operation_context", default={})

# Fields the filter guarantees on every record.
CONTEXT_FIELDS = ("account", "caller", "operation", "correlation_id")
_UNSET = "-"

_QUEUE_MAX_SIZE = 10_000
_FILE_NAME = "player_ledger.json.log"
_FILE_BACKUPS = 7
_CONSOLE_FORMAT = (
    "%(asctime)s %(levelname)-7s %(name)s "
    "[%(correlation_id)s %(operation)s %(account)s] %(message)s"
)

# Attributes every LogRecord carries; anything else arrived through extra=.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _level() -> int:
    level = getattr(logging, str(Config.LOG_LEVEL).upper(), None)
    return level if isinstance(level, int) else logging.INFO


def _use_json() -> bool:
    if Config.LOG_JSON is None:
        return Config.is_production()
    return bool(Config.LOG_JSON)


# ============================================================================
# Health
# ============================================================================


@dataclass(slots=True)
class _Counters:
    enqueued: int = 0
    dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_counters = _Counters()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_listener: Optional[QueueListener] = None


# ============================================================================
# Filter & Formatter
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the bound operation context onto records that lack it."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _operation_context.get({})
        for field in CONTEXT_FIELDS:
            if getattr(record, field, None) in (None, _UNSET):
                setattr(record, field, context.get(field) or _UNSET)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, _UNSET):
                entry[field] = value

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("player_ledger: log queue full, record dropped\n")


class _CountingQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.listener_errors += 1
        sys.stderr.write("player_ledger: log handler failed on a record\n")


def _sinks() -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        JSONFormatter() if _use_json() else logging.Formatter(_CONSOLE_FORMAT)
    )
    handlers: list[logging.Handler] = [console]

    if Config.LOG_TO_FILE:
        logs_dir = Path(Config.LOGS_DIR).resolve()
        logs_dir.mkdir(parents=True, exist_ok=True)
        daily = TimedRotatingFileHandler(
            filename=str(logs_dir / _FILE_NAME),
            when="midnight",
            backupCount=_FILE_BACKUPS,
            encoding="utf-8",
            utc=True,
        )
        daily.setFormatter(JSONFormatter())
        handlers.append(daily)

    return handlers


def setup_logging() -> None:
    """Install the queue handler on the root logger. Idempotent."""
    global _log_queue, _listener

    root = logging.getLogger()
    if getattr(root, "_ledger_logging", False):
        return

    _log_queue = queue.Queue(_QUEUE_MAX_SIZE)
    _listener = _CountingQueueListener(_log_queue, *_sinks(), respect_handler_level=True)
    _listener.start()

    handler = _DroppingQueueHandler(_log_queue)
    handler.addFilter(ContextFilter())
    root.addHandler(handler)
    root.setLevel(_level())

    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root._ledger_logging = True  # type: ignore[attr-defined]
    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "json": _use_json(),
            "to_file": Config.LOG_TO_FILE,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue and detach the handler."""
    global _log_queue, _listener

    root = logging.getLogger()
    if not getattr(root, "_ledger_logging", False):
        return

    if _listener is not None:
        _listener.stop()
        _listener = None

    for handler in list(root.handlers):
        if isinstance(handler, _DroppingQueueHandler):
            root.removeHandler(handler)
            handler.close()

    root._ledger_logging = False  # type: ignore[attr-defined]
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), "_ledger_logging", False)),
        queue_size=_log_queue.qsize() if _log_queue is not None else 0,
        queue_max_size=_log_queue.maxsize if _log_queue is not None else 0,
        records_enqueued=_counters.enqueued,
        records_dropped=_counters.dropped,
        listener_errors=_counters.listener_errors,
    )


# ============================================================================
# Context API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind account, caller and operation to every record logged in the block.

    Works with both ``with`` and ``async with``. Each block gets a fresh
    correlation id unless one is passed in.

    >>> async with LogContext(account=addr, operation="delete_account"):
    ...     logger.info("Deleting account")
    """

    def __init__(
        self,
        account: Optional[str] = None,
        caller: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "account": account,
            "caller": caller,
            "operation": operation,
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> LogContext:
        self._token = _operation_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _operation_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge `fields` into the current context. None values are ignored."""
    current = dict(_operation_context.get({}))
    current.update({key: value for key, value in fields.items() if value is not None})
    _operation_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_operation_context.get({}))


def clear_log_context() -> None:
    _operation_context.set({})


setup_logging()
