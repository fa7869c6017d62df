"""Structured logging with per-transaction context.

The runtime binds the transaction id, the calling identity and the logical
clock tick for the duration of each transaction; every record emitted while
the transaction runs carries them.
"""
from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

transaction_id_var: ContextVar[Optional[str]] = ContextVar("transaction_id", default=None)
caller_var: ContextVar[Optional[str]] = ContextVar("caller", default=None)
tick_var: ContextVar[Optional[int]] = ContextVar("tick", default=None)

_CONTEXT_FIELDS = ("transaction_id", "caller", "tick")

_RESERVED_ATTRS = frozenset({
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
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    *_CONTEXT_FIELDS,
})


class TransactionContextFilter(logging.Filter):
    """Adds transaction context to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.transaction_id = transaction_id_var.get()
        record.caller = caller_var.get()
        record.tick = tick_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return str(value)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging (True) or simple format (False)
        log_file: Optional file path for logging output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[tx=%(transaction_id)s caller=%(caller)s tick=%(tick)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(TransactionContextFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(TransactionContextFilter())
        root_logger.addHandler(file_handler)


def generate_transaction_id() -> str:
    """Generate a new transaction ID."""
    return f"txn_{uuid.uuid4().hex[:16]}"


def get_transaction_id() -> Optional[str]:
    return transaction_id_var.get()


class LogContext:
    """Context manager for temporary logging context."""

    def __init__(
        self,
        transaction_id: Optional[str] = None,
        caller: Optional[str] = None,
        tick: Optional[int] = None,
    ):
        self.transaction_id = transaction_id
        self.caller = caller
        self.tick = tick
        self._tokens: list = []

    def __enter__(self) -> "LogContext":
        self._tokens = [
            transaction_id_var.set(self.transaction_id),
            caller_var.set(self.caller),
            tick_var.set(self.tick),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        transaction_id_var.reset(self._tokens[0])
        caller_var.reset(self._tokens[1])
        tick_var.reset(self._tokens[2])
