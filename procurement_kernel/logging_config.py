"""
Structured JSON logging for the procurement kernel.

Every record is one JSON object per line::

    {"ts": "...", "level": "INFO", "logger": "procurement_kernel.services...",
     "message": "transition_applied", "request_id": "42", "actor_id": "7",
     "operation": "act", "previous_stage": "pending_area_lead", ...}

Messages are snake_case event names.  Operation-scoped identifiers come
from ``LogContext``; everything else is passed through ``extra``.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping

_ROOT_LOGGER = "procurement_kernel"

# ---------------------------------------------------------------------------
# Operation context
# ---------------------------------------------------------------------------

_EMPTY: Mapping[str, str] = {}
_context: ContextVar[Mapping[str, str]] = ContextVar("procurement_log_context", default=_EMPTY)


class LogContext:
    """
    Operation-scoped fields stamped on every record of the current thread
    or task.

    Only the names in ``FIELDS`` are carried.  Values are stored as strings
    so integer ids can be passed as they are.
    """

    FIELDS = ("correlation_id", "actor_id", "request_id", "operation")

    @classmethod
    def _merged(cls, values: Mapping[str, Any]) -> dict[str, str]:
        merged = dict(_context.get())
        for name, value in values.items():
            if name in cls.FIELDS and value is not None:
                merged[name] = str(value)
        return merged

    @classmethod
    def set(cls, **values: Any) -> None:
        """Add or replace fields; None values leave a field untouched."""
        _context.set(cls._merged(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **values: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set(cls._merged(values))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        # extra fields never override the base keys or the context
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, exc_info) -> dict[str, Any]:
        exc = exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # structured attributes of kernel errors (request_id, role, ...)
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(exc_info)
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``procurement_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


_configured = False
_setup_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``procurement_kernel`` logger.

    Only the first call has an effect; later calls return immediately.
    Records do not propagate to the root logger.
    """
    global _configured
    with _setup_lock:
        if _configured:
            return
        _configured = True

        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        root = logging.getLogger(_ROOT_LOGGER)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``. FOR TESTING ONLY."""
    global _configured
    with _setup_lock:
        _configured = False
        root = logging.getLogger(_ROOT_LOGGER)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
