"""
Structured JSON logging for the rental kernel.

Every record under the ``rental_kernel`` logger namespace is rendered as one
JSON line. Request-scoped fields (the reservation being worked on, the actor
driving the change, a correlation id for the calling request) are carried in
a context variable and merged into each line, so the service layer binds them
once per operation instead of repeating them in every ``extra=`` dict.

Usage::

    from rental_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.reconciliation")

    with LogContext.bind(reservation_id=str(res.id), actor_id="desk-3"):
        logger.info("payment_applied", extra={"amount_minor": 5000})
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
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

_CONTEXT_FIELDS = ("correlation_id", "reservation_id", "actor_id", "trace_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar(
    "rental_log_context", default=_EMPTY
)


def _merged(current: Mapping[str, str], fields: dict[str, Any]) -> Mapping[str, str]:
    unknown = set(fields) - set(_CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
    updated = dict(current)
    updated.update({k: str(v) for k, v in fields.items() if v is not None})
    return MappingProxyType(updated)


class LogContext:
    """
    Request-scoped log fields.

    Backed by a single ContextVar holding a read-only mapping, so threads and
    asyncio tasks each see their own values. ``None`` never overwrites a
    field; use ``clear()`` to drop everything.
    """

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        reservation_id: str | None = None,
        actor_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        _context.set(
            _merged(
                _context.get(),
                {
                    "correlation_id": correlation_id,
                    "reservation_id": reservation_id,
                    "actor_id": actor_id,
                    "trace_id": trace_id,
                },
            )
        )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: str | None) -> "_Binding":
        """Bind fields for the duration of a ``with`` block."""
        return _Binding(fields)


class _Binding:
    def __init__(self, fields: dict[str, Any]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(_merged(_context.get(), self._fields))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # RentalKernelError subclasses keep their structured details as attributes.
    for name, value in vars(exc).items():
        if name.startswith("_") or name in ("args", "code"):
            continue
        fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message, context, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }

        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


_ROOT = "rental_kernel"


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``rental_kernel`` namespace."""
    return logging.getLogger(f"{_ROOT}.{name}")


_state_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``rental_kernel`` logger.

    Only the first call has an effect until ``reset_logging()`` is called.
    Records do not propagate to the root logger.
    """
    global _installed_handler
    with _state_lock:
        if _installed_handler is not None:
            return
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        logger = logging.getLogger(_ROOT)
        logger.setLevel(level)
        logger.propagate = False
        logger.addHandler(handler)
        _installed_handler = handler


def reset_logging() -> None:
    """Remove installed handlers so ``configure_logging`` can run again. Tests only."""
    global _installed_handler
    with _state_lock:
        logger = logging.getLogger(_ROOT)
        logger.handlers.clear()
        logger.setLevel(logging.WARNING)
        _installed_handler = None
