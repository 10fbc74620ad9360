"""
Module: ledger_kernel.logging_config
Responsibility:
    One JSON object per log line for everything under the ``ledger_kernel``
    logger namespace, with the ids of the aggregate being worked on merged
    into every line emitted while it is bound.

Usage:
    logger = get_logger("modules.billing.service")

    with LogContext.bind(invoice_id=invoice.id, actor_id=actor):
        logger.info("invoice_posted", extra={"invoice_number": number})

    # {"ts": "...", "level": "INFO", "logger": "ledger_kernel.modules...",
    #  "message": "invoice_posted", "invoice_id": "...", "actor_id": "...",
    #  "invoice_number": "INV-2025-001"}
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import IO, Any, Mapping
from uuid import UUID

LOGGER_NAMESPACE = "ledger_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "payment_id", "invoice_id", "expense_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class LogContext:
    """Ids bound to the current thread or task and stamped on each log line."""

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context fields: {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _bound.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _bound.reset(token)

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def clear() -> None:
        _bound.set(_EMPTY)


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """
    Envelope: ts, level, logger, message; then bound context; then the
    record's ``extra`` keys.  LedgerError details appear as ``exc_*`` keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_bound.get(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in line:
                line[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record))

        return json.dumps(line, default=_to_json)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_")
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the namespace root.  Later calls are no-ops
    until ``reset_logging()``.
    """
    root = logging.getLogger(LOGGER_NAMESPACE)
    if root.handlers:
        return
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Drop every handler from the namespace root (tests)."""
    root = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    root.propagate = True
