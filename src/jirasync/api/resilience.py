"""Resilience patterns for calls to the Jira REST API.

This module provides:
    - Exponential backoff delay calculation
    - Inline retry for transient failures
    - Circuit breaker

Rate limits are deliberately *not* retried here: a RateLimitError is
surfaced to the caller so the sync orchestrator decides how long to pause.

Example:
    circuit = CircuitBreaker(failure_threshold=5, timeout=60)
    result = await circuit.call(fetch_page)

    result = await retry_async(fetch_page, max_attempts=3)
"""
import asyncio
import logging
import random
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..exceptions import CircuitOpenError, NetworkError, ServerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient failures retried inside the client
TRANSIENT_EXCEPTIONS = (
    NetworkError,
    ServerError,
)


# ============================================
# Backoff
# ============================================

def backoff_delay(
    attempt: int,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
    jitter: bool = False,
) -> float:
    """Delay before retry number ``attempt`` (1-based).

    Args:
        attempt: Which retry this is, starting at 1
        initial_delay: Delay before the first retry
        backoff_factor: Multiplier applied per further attempt
        max_delay: Upper bound on the returned delay
        jitter: Scale the delay by a random factor in [0.5, 1.5)

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError(f"attempt must be at least 1, got {attempt}")
    delay = min(initial_delay * (backoff_factor ** (attempt - 1)), max_delay)
    if jitter:
        delay = min(delay * (0.5 + random.random()), max_delay)
    return delay


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    initial_delay: float = 0.5,
    max_delay: float = 30.0,
    retryable_exceptions: tuple = TRANSIENT_EXCEPTIONS,
    jitter: bool = True,
    **kwargs,
) -> T:
    """Retry an async call on transient failures with exponential backoff.

    Args:
        func: Async function to call
        *args: Arguments to pass to func
        max_attempts: Maximum attempts, including the first
        backoff_factor: Delay multiplier
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        retryable_exceptions: Exceptions to retry on
        jitter: Randomize each delay (see backoff_delay)
        **kwargs: Keyword arguments to pass to func

    Returns:
        Result from func

    Raises:
        The last retryable exception once attempts run out, or any
        non-retryable exception immediately.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt >= max_attempts:
                logger.error(f"All {max_attempts} attempts failed. Last error: {e}")
                raise
            delay = backoff_delay(
                attempt,
                initial_delay=initial_delay,
                backoff_factor=backoff_factor,
                max_delay=max_delay,
                jitter=jitter,
            )
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("retry_async called with max_attempts < 1")


# ============================================
# Circuit Breaker
# ============================================

class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation, requests pass through
    OPEN = "open"          # Failing, requests rejected immediately
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """Circuit breaker guarding the Jira API.

    State Transitions:
        CLOSED -> OPEN: When failure_count >= failure_threshold
        OPEN -> HALF_OPEN: When timeout expires
        HALF_OPEN -> CLOSED: After success_threshold successes
        HALF_OPEN -> OPEN: When a test request fails

    Only failures of the types in ``counted_exceptions`` trip the
    breaker; a 404 or a rejected credential says nothing about the
    health of the service.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60.0,
        success_threshold: int = 2,
        name: str = "jira",
        counted_exceptions: tuple = TRANSIENT_EXCEPTIONS,
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.name = name
        self.counted_exceptions = counted_exceptions

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _remaining_open_seconds(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self.timeout - (time.monotonic() - self._opened_at))

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        **kwargs,
    ) -> T:
        """Execute func through the circuit breaker.

        Raises:
            CircuitOpenError: If the circuit is open and the timeout has
                not elapsed
            Any exception from func (after updating circuit state)
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                remaining = self._remaining_open_seconds()
                if remaining > 0:
                    raise CircuitOpenError(
                        f"Circuit breaker '{self.name}' is open",
                        reset_at=datetime.now(timezone.utc) + timedelta(seconds=remaining),
                        failure_count=self._failure_count,
                    )
                logger.info(f"Circuit '{self.name}' transitioning to HALF_OPEN")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0

        try:
            result = await func(*args, **kwargs)
        except self.counted_exceptions as e:
            await self._on_failure(e)
            raise
        await self._on_success()
        return result

    async def _on_success(self):
        async with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.info(
                        f"Circuit '{self.name}' closing after "
                        f"{self._success_count} successes"
                    )
                    self._state = CircuitState.CLOSED
                    self._success_count = 0
                    self._opened_at = None

    async def _on_failure(self, exception: Exception):
        async with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit '{self.name}' reopening after test failure: {exception}"
                )
                self._state = CircuitState.OPEN
                self._opened_at = time.monotonic()
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.warning(
                    f"Circuit '{self.name}' opening after "
                    f"{self._failure_count} failures"
                )
                self._state = CircuitState.OPEN
                self._opened_at = time.monotonic()

    def reset(self):
        """Manually reset the circuit breaker to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at = None
        logger.info(f"Circuit '{self.name}' manually reset")

    def get_status(self) -> dict[str, Any]:
        """Get circuit breaker status for health checks."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "seconds_until_half_open": round(self._remaining_open_seconds(), 1)
            if self._state == CircuitState.OPEN
            else None,
        }
