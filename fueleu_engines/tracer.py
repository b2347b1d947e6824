"""
fueleu_engines.tracer -- ``@traced_engine`` and the FUELEU_ENGINE_TRACE record.

Responsibility:
    Log one FUELEU_ENGINE_TRACE line per successful engine call, naming the
    engine and its version, a 16-hex-digit fingerprint of the selected
    arguments and the wall time spent in the call.

Architecture position:
    Engines -- shared by every engine module.  The banking and balance
    engines also log their own events (capacity rejections, consumed
    entries); this module adds the per-call trace line.  Tracing never
    changes arguments or results.

Failure modes:
    - An engine exception propagates untouched and no trace line is written.
    - A fingerprint field the call did not supply hashes as null.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Mapping
from datetime import date
from enum import Enum
from typing import Any, TypeVar

from fueleu_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

F = TypeVar("F", bound=Callable[..., Any])

TRACE_MESSAGE = "FUELEU_ENGINE_TRACE"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over ``fingerprint_fields`` picked from ``arguments``."""
    selected = {name: arguments.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=_jsonable)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[F], F]:
    """Wrap an engine entry point so each successful call is traced."""

    def decorate(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def traced(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            _logger.info(TRACE_MESSAGE, extra={
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "input_fingerprint": fingerprint,
                "duration_ms": elapsed_ms,
            })
            return result

        return traced  # type: ignore[return-value]

    return decorate
