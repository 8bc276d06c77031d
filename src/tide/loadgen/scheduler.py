from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

import httpx

from tide.config import TestConfig
from tide.loadgen.client import execute_request
from tide.metrics import MetricsAggregator, MetricsSnapshot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class LoadScheduler:
    """Launches overlapping batches of ``concurrency`` requests every tick.

    Batches are launched at ``start + k * tick_interval_sec`` while the test
    duration has not elapsed and ``cancel()`` has not been called. In-flight
    requests are never aborted: once launching stops, every launched request
    is awaited so that each one contributes exactly one outcome.
    """

    def __init__(
        self,
        config: TestConfig,
        aggregator: MetricsAggregator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.aggregator = aggregator or MetricsAggregator()
        self._transport = transport
        self._progress = progress
        self._cancelled = asyncio.Event()
        self._state = SchedulerState.IDLE
        self._launched = 0
        self._ticks = 0
        self._started_mono: float | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def launched(self) -> int:
        return self._launched

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            logger.info("Cancellation requested, no new batches will be launched")
        self._cancelled.set()

    async def run(self) -> MetricsSnapshot:
        if self._state is not SchedulerState.IDLE:
            msg = f"Scheduler already {self._state.value}"
            raise RuntimeError(msg)
        started = time.perf_counter()
        self._started_mono = started
        self._transition(SchedulerState.RUNNING)
        tasks: list[asyncio.Task[None]] = []
        limits = httpx.Limits(max_connections=None, max_keepalive_connections=self.config.concurrency)
        async with httpx.AsyncClient(transport=self._transport, limits=limits) as client:
            try:
                await self._launch_batches(client, tasks, started)
            finally:
                running_ended = time.perf_counter()
                self._transition(SchedulerState.DRAINING)
                await self._drain(tasks)
                self.aggregator.close(started_at=started, running_ended_at=running_ended)
                self._transition(SchedulerState.STOPPED)
        snapshot = self.aggregator.summarize()
        logger.info(
            "Run finished: %d requests (%d ok, %d failed) in %.3fs",
            snapshot.total_requests,
            snapshot.successful_requests,
            snapshot.failed_requests,
            snapshot.actual_duration_sec,
        )
        return snapshot

    async def _launch_batches(
        self,
        client: httpx.AsyncClient,
        tasks: list[asyncio.Task[None]],
        started: float,
    ) -> None:
        interval = self.config.tick_interval_sec
        end = started + self.config.duration_sec
        while not self._cancelled.is_set() and time.perf_counter() < end:
            for _ in range(self.config.concurrency):
                tasks.append(asyncio.create_task(self._run_one(client)))
            self._launched += self.config.concurrency
            self._ticks += 1
            if self._progress:
                await self._progress(self._ticks, self._launched)
            next_tick = started + self._ticks * interval
            await self._wait_for_cancel(min(next_tick, end) - time.perf_counter())

    async def _drain(self, tasks: list[asyncio.Task[None]]) -> None:
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Request worker failed", exc_info=result)

    async def _run_one(self, client: httpx.AsyncClient) -> None:
        outcome = await execute_request(
            client,
            self.config.target,
            self.config.retry,
            self.config.success,
        )
        self.aggregator.record(outcome)

    async def _wait_for_cancel(self, delay: float) -> None:
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _transition(self, state: SchedulerState) -> None:
        logger.info("Scheduler %s -> %s", self._state.value, state.value)
        self._state = state

    def elapsed(self) -> float:
        if self._started_mono is None:
            return 0.0
        return time.perf_counter() - self._started_mono
