"""
In-process telemetry for Mindweave.

Structured log lines plus in-memory counters and latency samples. Nothing is
shipped to an external backend; /debug/stats reads these values and tests
assert against them.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("mindweave.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def _latency_key(metric_name: str) -> str:
    return metric_name if metric_name.endswith("_ms") else f"{metric_name}_ms"


def log_event(event_name: str, **fields: Any) -> None:
    """
    Emit a structured event line. Callers redact user data before passing it.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and return its new value.

    Side Effects:
        - Modifies _COUNTERS (in-memory state)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def get_counters(prefix: str = "") -> dict[str, int]:
    """Snapshot of counters, optionally restricted to a name prefix."""
    return {k: v for k, v in _COUNTERS.items() if k.startswith(prefix)}


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """
    Time the enclosed block and record the sample in milliseconds.

    Side Effects:
        - Appends to _LATENCIES (in-memory state)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        key = _latency_key(metric_name)
        logger.debug("timing=%s ms=%.3f", key, elapsed_ms)
        _LATENCIES.setdefault(key, []).append(elapsed_ms)


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """Count, min, max, avg, p50 and p95 for a timed block."""
    samples = sorted(_LATENCIES.get(_latency_key(metric_name), []))
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}

    count = len(samples)
    return {
        "count": count,
        "min": samples[0],
        "max": samples[-1],
        "avg": sum(samples) / count,
        "p50": samples[int(count * 0.50)],
        "p95": samples[min(int(count * 0.95), count - 1)],
    }


def reset_telemetry() -> None:
    """
    Clear counters and latency samples (tests).

    Side Effects:
        - Clears _COUNTERS and _LATENCIES
    """
    _COUNTERS.clear()
    _LATENCIES.clear()
