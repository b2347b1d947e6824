"""
Structured JSON logging for the compliance kernel.

Responsibility:
    Emit one JSON object per log line under the ``fueleu`` logger
    namespace, carrying the ship / pool / period context of the operation
    that produced it.

Architecture position:
    Kernel -- imported by services and engines; imports nothing above the
    kernel.

Usage:
    from fueleu_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.banking_ledger")
    with LogContext.bind(ship_id="IMO9876543"):
        logger.info("bank_entry_created", extra={"units": "30"})
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

NAMESPACE = "fueleu"

CONTEXT_FIELDS: frozenset[str] = frozenset({
    "correlation_id",
    "actor_id",
    "ship_id",
    "pool_id",
    "reporting_period",
})

# One immutable mapping per execution context; writers replace it whole.
_bound: ContextVar[Mapping[str, str]] = ContextVar("fueleu_log_context", default={})


def _merged(fields: Mapping[str, Any]) -> dict[str, str]:
    unknown = set(fields) - CONTEXT_FIELDS
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    merged = dict(_bound.get())
    merged.update({k: str(v) for k, v in fields.items() if v is not None})
    return merged


class LogContext:
    """
    Operation-scoped fields copied onto every log line.

    Backed by a ContextVar, so values follow the thread or task that set
    them and never leak into concurrent operations.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Add or overwrite fields; ``None`` values leave a field untouched."""
        _bound.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def clear() -> None:
        _bound.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _bound.set(_merged(fields))
        try:
            yield
        finally:
            _bound.reset(token)


# LogRecord attributes that are never copied into the payload as extras.
_RESERVED: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return repr(value)


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                payload.setdefault(key, value)
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._describe_exception(record))
        return json.dumps(payload, default=_json_default)

    def _describe_exception(self, record: logging.LogRecord) -> dict[str, Any]:
        error = record.exc_info[1]
        described: dict[str, Any] = {
            "exc_type": type(error).__name__,
            "exc_message": str(error),
        }
        code = getattr(error, "code", None)
        if code is not None:
            described["exc_code"] = code
        # Kernel exceptions expose their structured fields as attributes.
        described.update(
            (f"exc_{name}", value)
            for name, value in vars(error).items()
            if name != "code" and not name.startswith("_")
        )
        described["traceback"] = self.formatException(record.exc_info)
        return described


def get_logger(name: str) -> logging.Logger:
    """Return ``fueleu.<name>``."""
    return logging.getLogger(f"{NAMESPACE}.{name}")


_install_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``fueleu`` logger.

    Only the first call has an effect until reset_logging() is called.
    """
    global _installed_handler
    with _install_lock:
        if _installed_handler is not None:
            return
        _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)
        _installed_handler.setFormatter(StructuredFormatter())

        namespace_logger = logging.getLogger(NAMESPACE)
        namespace_logger.setLevel(level)
        namespace_logger.propagate = False
        namespace_logger.addHandler(_installed_handler)


def reset_logging() -> None:
    """Detach the handler installed by configure_logging(). Test use."""
    global _installed_handler
    with _install_lock:
        namespace_logger = logging.getLogger(NAMESPACE)
        if _installed_handler is not None:
            namespace_logger.removeHandler(_installed_handler)
            _installed_handler = None
        namespace_logger.setLevel(logging.NOTSET)
        namespace_logger.propagate = True
