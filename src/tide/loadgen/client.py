from __future__ import annotations

import asyncio
import logging
import time

import httpx

from tide.config import RetryConfig, SuccessPolicy, TargetConfig
from tide.metrics import FailureKind, RequestOutcome

logger = logging.getLogger(__name__)


def backoff_delay(retry: RetryConfig, attempt: int) -> float:
    """Delay to wait after failed attempt number ``attempt`` (1-based)."""
    delay = retry.base_delay_sec * (retry.multiplier ** (attempt - 1))
    return min(retry.max_delay_sec, delay)


async def execute_request(
    client: httpx.AsyncClient,
    target: TargetConfig,
    retry: RetryConfig,
    success: SuccessPolicy,
) -> RequestOutcome:
    start_mono = time.perf_counter()
    attempt = 0
    while True:
        attempt += 1
        status_code: int | None = None
        try:
            resp = await asyncio.wait_for(
                client.request(
                    target.method,
                    target.url,
                    headers=target.headers,
                    timeout=target.timeout_sec,
                ),
                timeout=target.timeout_sec,
            )
            status_code = resp.status_code
            if success.accepts(status_code):
                return _outcome(start_mono, attempt, None, status_code)
            err = FailureKind.NON_SUCCESS_STATUS
            detail = f"status {status_code}"
        except (httpx.TimeoutException, asyncio.TimeoutError):
            err = FailureKind.TIMEOUT
            detail = f"no response within {target.timeout_sec}s"
        except httpx.HTTPError as exc:
            err = FailureKind.CONNECTION
            detail = f"{type(exc).__name__}: {exc}"
        if attempt > retry.max_retries:
            logger.debug("Request to %s failed after %d attempt(s): %s", target.url, attempt, detail)
            return _outcome(start_mono, attempt, err, status_code)
        delay = backoff_delay(retry, attempt)
        logger.debug(
            "Request failed (attempt %d/%d): %s. Retrying in %.3fs",
            attempt,
            retry.max_retries + 1,
            detail,
            delay,
        )
        await asyncio.sleep(delay)


def _outcome(
    start_mono: float,
    attempts: int,
    failure_kind: FailureKind | None,
    status_code: int | None,
) -> RequestOutcome:
    end_mono = time.perf_counter()
    return RequestOutcome(
        latency_ms=(end_mono - start_mono) * 1000.0,
        success=failure_kind is None,
        attempts=attempts,
        failure_kind=failure_kind,
        status_code=status_code,
        started_at=start_mono,
        completed_at=end_mono,
    )
