"""
Module: fulfillment_kernel.logging_config
Responsibility: Structured JSON logging for every fulfillment package.
    One JSON object per line, carrying the event name as ``message``, the
    request-scoped fields held in ``LogContext`` and whatever the call site
    passed in ``extra``.
Architecture position: Kernel.  Imported by every layer; imports nothing
    from the fulfillment packages.

Invariants enforced:
    - Loggers live under the ``fulfillment`` namespace (``get_logger``).
    - Context fields are a closed set: correlation_id, actor_id, lpo_id,
      batch_id.  Binding an unknown field is a TypeError.
    - ``extra`` never overrides a context field of the same name.
    - FulfillmentError attributes (lpo_id, sequence, versions...) are
      flattened into ``exc_*`` fields alongside ``exc_code``.
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
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "fulfillment"

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"fulfillment_log_{name}", default=None)
    for name in ("correlation_id", "actor_id", "lpo_id", "batch_id")
}


class LogContext:
    """
    Request-scoped log fields, safe across threads and asyncio tasks.

    Usage:
        with LogContext.bind(lpo_id="L-004"):
            logger.info("item_resolved")      # record carries lpo_id
    """

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set context fields; None values are ignored."""
        for name, value in fields.items():
            if value is not None:
                cls._var(name).set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block, then restore them."""
        for name in fields:
            cls._var(name)
        return _BoundContext(fields)

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_VARS[name]
        except KeyError:
            raise TypeError(f"unknown log context field: {name!r}") from None


class _BoundContext:
    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is not None:
                var = _CONTEXT_VARS[name]
                self._tokens.append((var, var.set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (tuple, set, frozenset)):
        return list(obj)
    if isinstance(obj, UUID):
        return str(obj)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``fulfillment.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``fulfillment`` logger.

    Idempotent: only the first call in a process takes effect.  ``level``
    accepts a level number or a name in any case ("info", "DEBUG"), as read
    from the ``logging.level`` setting.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if isinstance(level, str):
        level = level.upper()

    fulfillment_logger = logging.getLogger(_LOGGER_PREFIX)
    fulfillment_logger.setLevel(level)
    fulfillment_logger.propagate = False

    out = handler or logging.StreamHandler(stream or sys.stderr)
    out.setFormatter(StructuredFormatter())
    fulfillment_logger.addHandler(out)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` again.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    fulfillment_logger = logging.getLogger(_LOGGER_PREFIX)
    fulfillment_logger.handlers.clear()
    fulfillment_logger.setLevel(logging.NOTSET)
    fulfillment_logger.propagate = True
