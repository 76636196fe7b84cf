"""
axioma_engines.tracer -- Engine invocation tracer emitting AXIOMA_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with one structured trace record: engine name,
    engine version, an input fingerprint (SHA-256 prefix over selected
    arguments) and duration.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits a log record only; it does not mutate inputs or results.

Invariants enforced:
    - Fingerprints are deterministic: values are canonicalized (dict keys
      sorted, Decimals by string, dataclasses by field) before hashing, so
      identical inputs always produce the same fingerprint.
    - Positional and keyword arguments fingerprint identically; arguments
      are bound against the wrapped function's signature first.
    - Every record logged during the call carries ``engine`` and a
      ``calculation_id`` through LogContext; a nested traced call reuses
      the outer calculation_id.

Failure modes:
    - A fingerprint field that is not a parameter of the wrapped function is
      recorded as "null".
    - Exceptions from the wrapped function propagate unchanged; no trace
      record is emitted for a failed call.

Usage:
    from axioma_engines.tracer import traced_engine

    @traced_engine("tax", "1.0", fingerprint_fields=("lines", "tax_rules"))
    def compute(self, lines, tax_rules):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
import uuid
from collections.abc import Callable
from decimal import Decimal
from enum import Enum
from typing import Any

from axioma_kernel.logging_config import LogContext, get_logger

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (bool, int, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return type(value).__name__ + _canonicalize(fields)
    if isinstance(value, dict):
        items = sorted((str(k), v) for k, v in value.items())
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (set, frozenset)):
        return "{" + ",".join(sorted(_canonicalize(v) for v in value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic 16-hex-char fingerprint of selected arguments.

    Missing fields are recorded as "null".
    """
    parts: list[str] = []
    for field in fingerprint_fields:
        parts.append(f"{field}={_canonicalize(arguments.get(field))}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits AXIOMA_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "tax").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names to include in the input
            fingerprint hash.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, dict(bound.arguments))

            # A nested engine call joins the calculation already in progress.
            calculation_id = LogContext.current().get("calculation_id") or uuid.uuid4().hex[:16]
            with LogContext.bind(engine=engine_name, calculation_id=calculation_id):
                t0 = time.monotonic()
                result = func(*args, **kwargs)
                duration_ms = round((time.monotonic() - t0) * 1000, 2)

                _logger.info(
                    "AXIOMA_ENGINE_TRACE",
                    extra={
                        "trace_type": "AXIOMA_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fp,
                        "duration_ms": duration_ms,
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
