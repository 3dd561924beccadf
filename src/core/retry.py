"""
Retries with exponential backoff, guarded by a circuit breaker.

Used for calls to the stock quote upstream: transient transport errors
and 429/5xx responses are retried a few times; after repeated failures
the breaker opens and calls are refused until the recovery timeout has
passed.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from src.core.redaction import redact_string


logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    """Raised when a call is rejected because the circuit is open."""


@dataclass
class CircuitBreaker:
    """
    Failure counter with three states.

    CLOSED counts consecutive failures and opens at failure_threshold.
    OPEN refuses calls until recovery_timeout seconds have passed since
    the last failure, then lets a trial call through as HALF_OPEN.
    Any success closes the circuit again.
    """
    failure_threshold: int = 5
    recovery_timeout: float = 60.0

    failure_count: int = field(default=0, init=False)
    opened_at: float | None = field(default=None, init=False)
    state: CircuitState = field(default=CircuitState.CLOSED, init=False)

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.warning(f"Circuit breaker OPENED after {self.failure_count} failures")
            self.state = CircuitState.OPEN
            self.opened_at = time.monotonic()

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info("Circuit breaker CLOSED")
        self.failure_count = 0
        self.opened_at = None
        self.state = CircuitState.CLOSED

    def can_execute(self) -> bool:
        if self.state != CircuitState.OPEN:
            return True
        if self.opened_at is not None and time.monotonic() - self.opened_at >= self.recovery_timeout:
            self.state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker entering HALF_OPEN state")
            return True
        return False

    def reset(self) -> None:
        self.failure_count = 0
        self.opened_at = None
        self.state = CircuitState.CLOSED


def calculate_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """
    Exponential delay for a 0-indexed attempt, capped, plus up to 10% jitter.
    """
    delay = min(base_delay * (2 ** attempt), max_delay)
    return delay + random.uniform(0, delay * 0.1)


def _retry_after(error: Exception) -> float | None:
    # Honour the server's Retry-After on 429 responses
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 429:
        header = error.response.headers.get("Retry-After")
        try:
            return float(header) if header else None
        except ValueError:
            return None
    return None


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: tuple = (httpx.HTTPError, asyncio.TimeoutError),
    retryable_status_codes: frozenset = RETRYABLE_STATUS_CODES,
    circuit_breaker: CircuitBreaker | None = None,
    **kwargs
) -> Any:
    """
    Await func(*args, **kwargs), retrying transient failures.

    An httpx.Response with a retryable status counts as a failure. Log
    lines are redacted because httpx error messages include the request
    URL, which may carry an API key.

    Args:
        func: Coroutine function to call
        max_retries: Retries after the first attempt
        base_delay: Backoff for the first retry, doubled each time
        max_delay: Backoff cap
        retryable_exceptions: Exception types worth retrying
        retryable_status_codes: Response statuses worth retrying
        circuit_breaker: Breaker consulted before every attempt

    Returns:
        The first successful result

    Raises:
        CircuitOpenError: If the breaker refuses the call
        The last error once retries are exhausted
    """
    for attempt in range(max_retries + 1):
        if circuit_breaker and not circuit_breaker.can_execute():
            raise CircuitOpenError("Circuit breaker is OPEN, rejecting call")

        try:
            result = await func(*args, **kwargs)
            if isinstance(result, httpx.Response) and result.status_code in retryable_status_codes:
                raise httpx.HTTPStatusError(
                    f"Retryable status {result.status_code}",
                    request=result.request,
                    response=result,
                )
        except retryable_exceptions as e:
            if circuit_breaker:
                circuit_breaker.record_failure()

            if attempt == max_retries:
                logger.error(redact_string(f"Max retries ({max_retries}) exhausted: {e}"))
                raise

            delay = _retry_after(e)
            if delay is None:
                delay = calculate_backoff(attempt, base_delay, max_delay)
            logger.warning(redact_string(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. Retrying in {delay:.2f}s"
            ))
            await asyncio.sleep(delay)
            continue

        if circuit_breaker:
            circuit_breaker.record_success()
        return result
