"""
Structured JSON logging for the depreciation engine.

Every record under the ``asset_kernel`` logger tree is rendered as one JSON
line.  Run-scoped identifiers (correlation, tenant, asset, actor) live in a
context variable so a batch run and every per-asset run inside it stamp the
same ``correlation_id`` without threading it through call signatures.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "asset_kernel"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "tenant_id", "asset_id", "actor_id")

_context: ContextVar[dict[str, str]] = ContextVar("asset_log_context", default={})


def _check_fields(values: dict[str, Any]) -> None:
    unknown = set(values) - set(_CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context fields: {sorted(unknown)}")


def _merged(values: dict[str, Any]) -> dict[str, str]:
    merged = dict(_context.get())
    merged.update({k: str(v) for k, v in values.items() if v is not None})
    return merged


class LogContext:
    """
    Run-scoped log fields: ``correlation_id``, ``tenant_id``, ``asset_id``
    and ``actor_id``.

    Values may be UUIDs or strings; they are stored as strings.  ``None``
    leaves a field untouched.
    """

    @staticmethod
    def set(**values: Any) -> None:
        _check_fields(values)
        _context.set(_merged(values))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**values: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        _check_fields(values)
        token = _context.set(_merged(values))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, val) for key, val in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )
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
        # Engine errors keep their structured attributes on the instance
        for key, val in vars(exc).items():
            if not key.startswith("_") and key != "code":
                fields[f"exc_{key}"] = val
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the asset_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``asset_kernel`` logger.

    Only the first call has any effect; later calls return immediately so
    library entry points may call it freely.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False
    root_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` to run again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
