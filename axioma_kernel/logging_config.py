"""
Structured JSON logging for the Axioma calculation engines.

Every record is one JSON object per line.  Engines log amounts as ``Money``
and rates as ``Decimal``; the formatter renders them losslessly (amounts
as ``{"amount": "220.00", "currency": "USD"}``, Decimals as strings) so
a log line can be replayed against the engine without float drift.

Calculation context:
    ``LogContext.bind(...)`` scopes fields to a block.  ``@traced_engine``
    binds ``engine`` and ``calculation_id`` around every engine call, so
    the started/completed records and the trace record of one calculation
    share an id.  Callers bind who the calculation is for::

        with LogContext.bind(tenant_id="acme", document_id="INV-0042"):
            calculator.compute(lines, rules)

Errors:
    ``logger.error(..., exc_info=True)`` adds an ``error`` object holding
    the exception type, message, machine ``code`` and the structured
    attributes of AxiomaCalcError subclasses.
"""

from __future__ import annotations

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import contextlib
import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from axioma_kernel.domain.values import Currency, Money

ROOT_LOGGER_NAME = "axioma"

CONTEXT_FIELDS = (
    "tenant_id",
    "document_id",
    "employee_id",
    "engine",
    "calculation_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("axioma_log_context", default=_EMPTY)


class LogContext:
    """Scoped calculation context attached to every record."""

    @staticmethod
    def current() -> Mapping[str, str]:
        """Read-only view of the fields bound in the current context."""
        return _context.get()

    @staticmethod
    @contextlib.contextmanager
    def bind(**fields: str | None) -> Iterator[Mapping[str, str]]:
        """
        Bind fields for the duration of a ``with`` block.

        None values are skipped; outer bindings are restored on exit even
        when the block raises.

        Raises:
            KeyError: a field is not one of CONTEXT_FIELDS.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise KeyError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _context.set(MappingProxyType(merged))
        try:
            yield _context.get()
        finally:
            _context.reset(token)

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _render(value: Any) -> Any:
    """JSON fallback for the value types engines put in ``extra``."""
    if isinstance(value, Money):
        return {"amount": str(value.amount), "currency": value.currency.code}
    if isinstance(value, Currency):
        return value.code
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


def _error_payload(exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        payload["code"] = code
    fields = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
    if fields:
        payload["fields"] = fields
    return payload


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.current(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _error_payload(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_render)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

# Marks the handler installed by configure_logging so setup is idempotent
# and reset_logging removes only what it added.
_HANDLER_MARKER = "_axioma_structured_handler"
_setup_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``axioma`` namespace (``engines.tax`` -> ``axioma.engines.tax``)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """
    Install the structured handler on the ``axioma`` logger.

    A second call is a no-op while the first handler is installed.
    ``level`` accepts a number or a name such as ``"DEBUG"``.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    with _setup_lock:
        if any(getattr(h, _HANDLER_MARKER, False) for h in root.handlers):
            return root
        if isinstance(level, str):
            name, level = level, logging.getLevelName(level.upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level: {name!r}")
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _HANDLER_MARKER, True)
        root.addHandler(installed)
        root.setLevel(level)
        root.propagate = False
    return root


def reset_logging() -> None:
    """Remove the structured handler and restore defaults. For tests."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    with _setup_lock:
        for h in [h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)]:
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
        root.propagate = True
