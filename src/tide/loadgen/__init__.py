from __future__ import annotations

from tide.loadgen.client import backoff_delay, execute_request
from tide.loadgen.scheduler import LoadScheduler, ProgressCallback, SchedulerState

__all__ = ["LoadScheduler", "ProgressCallback", "SchedulerState", "backoff_delay", "execute_request"]
