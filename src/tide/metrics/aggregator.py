from __future__ import annotations

import threading

import numpy as np

from tide.metrics.models import FailureKind, MetricsSnapshot, RequestOutcome


class AggregatorClosedError(RuntimeError):
    pass


class MetricsAggregator:
    """Accumulates request outcomes from many concurrent workers.

    ``record`` may be called from asyncio tasks or OS threads; every update
    happens under one lock and touches only in-memory counters. Latency
    samples are retained in full so the median and tail percentiles can be
    computed exactly once the run has stopped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False
        self._successful = 0
        self._failed = 0
        self._failures: dict[FailureKind, int] = {}
        self._samples: list[float] = []
        self._sum_ms = 0.0
        self._min_ms = float("inf")
        self._max_ms = float("-inf")
        self._first_start: float | None = None
        self._last_completion: float | None = None
        self._run_start: float | None = None
        self._running_end: float | None = None

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._samples)

    @property
    def closed(self) -> bool:
        return self._closed

    def record(self, outcome: RequestOutcome) -> None:
        with self._lock:
            if self._closed:
                raise AggregatorClosedError("Cannot record outcomes after the aggregator is closed")
            if outcome.success:
                self._successful += 1
            else:
                kind = outcome.failure_kind
                self._failed += 1
                self._failures[kind] = self._failures.get(kind, 0) + 1
            latency = outcome.latency_ms
            self._samples.append(latency)
            self._sum_ms += latency
            if latency < self._min_ms:
                self._min_ms = latency
            if latency > self._max_ms:
                self._max_ms = latency
            if self._first_start is None or outcome.started_at < self._first_start:
                self._first_start = outcome.started_at
            if self._last_completion is None or outcome.completed_at > self._last_completion:
                self._last_completion = outcome.completed_at

    def close(self, started_at: float | None = None, running_ended_at: float | None = None) -> None:
        """Freeze the aggregator, optionally pinning the run window.

        ``started_at`` replaces the earliest outcome start as the beginning of
        the run. ``running_ended_at`` is when launching stopped; the reported
        duration never ends before it.
        """
        with self._lock:
            self._closed = True
            if started_at is not None:
                self._run_start = started_at
            if running_ended_at is not None:
                self._running_end = running_ended_at

    def summarize(self) -> MetricsSnapshot:
        with self._lock:
            total = len(self._samples)
            failures = dict(self._failures)
            actual_duration = self._actual_duration()
            if total == 0:
                return MetricsSnapshot(
                    total_requests=0,
                    successful_requests=0,
                    failed_requests=0,
                    min_ms=None,
                    max_ms=None,
                    median_ms=None,
                    avg_ms=None,
                    p95_ms=None,
                    p99_ms=None,
                    actual_duration_sec=actual_duration,
                    failures_by_kind=failures,
                )
            samples = np.asarray(self._samples, dtype=float)
            min_ms = self._min_ms
            max_ms = self._max_ms
            # clamp summation drift so avg stays inside [min, max]
            avg_ms = min(max(self._sum_ms / total, min_ms), max_ms)
            successful = self._successful
            failed = self._failed
        p50, p95, p99 = (float(v) for v in np.percentile(samples, [50, 95, 99]))
        return MetricsSnapshot(
            total_requests=total,
            successful_requests=successful,
            failed_requests=failed,
            min_ms=min_ms,
            max_ms=max_ms,
            median_ms=p50,
            avg_ms=avg_ms,
            p95_ms=p95,
            p99_ms=p99,
            actual_duration_sec=actual_duration,
            failures_by_kind=failures,
        )

    def _actual_duration(self) -> float:
        start = self._run_start if self._run_start is not None else self._first_start
        ends = [t for t in (self._last_completion, self._running_end) if t is not None]
        if start is None or not ends:
            return 0.0
        return max(0.0, max(ends) - start)
