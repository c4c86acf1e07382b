"""Timing instrumentation for the engine's analyses.

``@profile_operation(name)`` wraps a graph build or analysis, measures it
with ``perf_counter_ns`` and hands the duration to the process-wide
:class:`TimingCollector`.  The CLI's ``--profile`` flag prints
:meth:`TimingCollector.report` once a command has finished, which shows
where a query over a large estate spends its time.

Usage::

    from pipeviz_engine.telemetry.profiling import profile_operation

    @profile_operation("graph.build")
    def build_graph_model(config):
        ...
"""

from __future__ import annotations

import functools
import logging
import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class OperationTiming:
    """Aggregated timings of one instrumented operation, in milliseconds."""

    operation: str
    calls: int
    total_ms: float
    mean_ms: float
    p95_ms: float
    max_ms: float


class TimingCollector:
    """Keeps the most recent ``window`` durations of each operation.

    Safe to share between threads; engine snapshots are queried
    concurrently by readers.
    """

    def __init__(self, window: int = 256) -> None:
        self._window = window
        self._samples: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def add(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            samples = self._samples.get(operation)
            if samples is None:
                samples = self._samples[operation] = deque(maxlen=self._window)
            samples.append(duration_ms)

    def summary(self, operation: str) -> OperationTiming | None:
        """Timings for *operation*, or ``None`` if it never ran."""
        with self._lock:
            samples = sorted(self._samples.get(operation, ()))
        if not samples:
            return None
        total = sum(samples)
        # Nearest-rank percentile.
        rank = max(math.ceil(0.95 * len(samples)) - 1, 0)
        return OperationTiming(
            operation=operation,
            calls=len(samples),
            total_ms=round(total, 3),
            mean_ms=round(total / len(samples), 3),
            p95_ms=round(samples[rank], 3),
            max_ms=round(samples[-1], 3),
        )

    def report(self) -> list[OperationTiming]:
        """Every operation that ran, most total time first."""
        with self._lock:
            operations = list(self._samples)
        timings = [t for t in (self.summary(op) for op in operations) if t is not None]
        return sorted(timings, key=lambda t: (-t.total_ms, t.operation))

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()


_collector = TimingCollector()


def get_collector() -> TimingCollector:
    """The collector every ``@profile_operation`` records into."""
    return _collector


def profile_operation(name: str) -> Callable[[F], F]:
    """Time each call of the decorated function under *name*.

    The duration is recorded even when the call raises.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_ns = time.perf_counter_ns()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                _collector.add(name, duration_ms)
                logger.debug("PROFILE %s: %.3f ms", name, duration_ms)

        return wrapper  # type: ignore[return-value]

    return decorator
