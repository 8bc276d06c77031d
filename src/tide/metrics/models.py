from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    NON_SUCCESS_STATUS = "non_success_status"


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    """Terminal result of one logical request, retries included.

    ``latency_ms`` spans every attempt and backoff wait, from the start of the
    first attempt to the terminal result. ``started_at`` and ``completed_at``
    are ``time.perf_counter()`` readings.
    """

    latency_ms: float
    success: bool
    attempts: int
    failure_kind: FailureKind | None = None
    status_code: int | None = None
    started_at: float = 0.0
    completed_at: float = 0.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            msg = f"attempts must be >= 1, got {self.attempts}"
            raise ValueError(msg)
        if self.success == (self.failure_kind is not None):
            msg = "failure_kind must be set if and only if the request failed"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    total_requests: int
    successful_requests: int
    failed_requests: int
    min_ms: float | None
    max_ms: float | None
    median_ms: float | None
    avg_ms: float | None
    p95_ms: float | None
    p99_ms: float | None
    actual_duration_sec: float
    failures_by_kind: Mapping[FailureKind, int] = field(default_factory=dict)

    @property
    def requests_per_sec(self) -> float:
        if self.actual_duration_sec <= 0:
            return 0.0
        return self.total_requests / self.actual_duration_sec

    @property
    def is_empty(self) -> bool:
        return self.total_requests == 0
