from __future__ import annotations

from tide.metrics.aggregator import AggregatorClosedError, MetricsAggregator
from tide.metrics.models import FailureKind, MetricsSnapshot, RequestOutcome

__all__ = [
    "AggregatorClosedError",
    "FailureKind",
    "MetricsAggregator",
    "MetricsSnapshot",
    "RequestOutcome",
]
