from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True, slots=True)
class TargetConfig:
    url: str
    method: str = "GET"
    timeout_sec: float = 10.0
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    max_retries: int = 2
    base_delay_sec: float = 0.2
    multiplier: float = 2.0
    max_delay_sec: float = 2.0


@dataclass(frozen=True, slots=True)
class SuccessPolicy:
    """Inclusive range of HTTP status codes counted as a successful response."""

    min_status: int = 200
    max_status: int = 299

    def accepts(self, status_code: int) -> bool:
        return self.min_status <= status_code <= self.max_status


@dataclass(frozen=True, slots=True)
class TestConfig:
    target: TargetConfig
    concurrency: int = 5
    duration_sec: float = 10.0
    tick_interval_sec: float = 1.0
    retry: RetryConfig = field(default_factory=RetryConfig)
    success: SuccessPolicy = field(default_factory=SuccessPolicy)

    __test__ = False

    @property
    def target_url(self) -> str:
        return self.target.url

    @property
    def timeout_sec(self) -> float:
        return self.target.timeout_sec

    @property
    def max_retries(self) -> int:
        return self.retry.max_retries
