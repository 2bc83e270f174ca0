#!/usr/bin/env python3
"""Tests for resilience patterns.

Tests cover:
    - Circuit breaker state transitions (CLOSED -> OPEN -> HALF_OPEN -> CLOSED)
    - Which failures the circuit counts
    - Exponential backoff delays
    - Inline retry of transient failures
"""
from unittest.mock import AsyncMock, patch

import pytest

from src.jirasync.api.resilience import (
    CircuitBreaker,
    CircuitState,
    backoff_delay,
    retry_async,
)
from src.jirasync.exceptions import (
    AuthenticationError,
    CircuitOpenError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)


# ============================================
# Circuit Breaker State Transition Tests
# ============================================

class TestCircuitBreakerStateTransitions:
    """Test circuit breaker state machine transitions."""

    def test_initial_state_is_closed(self):
        """Circuit should start in CLOSED state."""
        circuit = CircuitBreaker(failure_threshold=3)
        assert circuit.state == CircuitState.CLOSED
        assert not circuit.is_open
        assert circuit.failure_count == 0

    @pytest.mark.asyncio
    async def test_closed_to_open_after_failures(self):
        """Circuit should open after reaching failure threshold."""
        circuit = CircuitBreaker(failure_threshold=3, timeout=60.0)

        async def failing_func():
            raise ServerError("Server error", status_code=500)

        for i in range(2):
            with pytest.raises(ServerError):
                await circuit.call(failing_func)
            assert circuit.state == CircuitState.CLOSED
            assert circuit.failure_count == i + 1

        with pytest.raises(ServerError):
            await circuit.call(failing_func)

        assert circuit.state == CircuitState.OPEN
        assert circuit.is_open

    @pytest.mark.asyncio
    async def test_open_circuit_rejects_calls(self):
        """An open circuit should fail fast without calling the function."""
        circuit = CircuitBreaker(failure_threshold=1, timeout=60.0)
        func = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError):
            await circuit.call(func)

        with pytest.raises(CircuitOpenError) as exc_info:
            await circuit.call(func)

        assert func.await_count == 1
        assert exc_info.value.failure_count == 1
        assert exc_info.value.reset_at is not None

    @pytest.mark.asyncio
    async def test_half_open_closes_after_successes(self):
        """After the timeout, enough successes should close the circuit."""
        circuit = CircuitBreaker(failure_threshold=1, timeout=0.0, success_threshold=2)

        with pytest.raises(ServerError):
            await circuit.call(AsyncMock(side_effect=ServerError("boom", status_code=503)))
        assert circuit.state == CircuitState.OPEN

        ok = AsyncMock(return_value="ok")
        assert await circuit.call(ok) == "ok"
        assert circuit.state == CircuitState.HALF_OPEN

        assert await circuit.call(ok) == "ok"
        assert circuit.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_reopens_on_failure(self):
        """A failed test request should reopen the circuit."""
        circuit = CircuitBreaker(failure_threshold=1, timeout=0.0)
        failing = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError):
            await circuit.call(failing)
        with pytest.raises(NetworkError):
            await circuit.call(failing)

        assert circuit.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        circuit = CircuitBreaker(failure_threshold=3)

        with pytest.raises(ServerError):
            await circuit.call(AsyncMock(side_effect=ServerError("x", status_code=500)))
        await circuit.call(AsyncMock(return_value=None))

        assert circuit.failure_count == 0

    def test_reset(self):
        circuit = CircuitBreaker(failure_threshold=1)
        circuit._state = CircuitState.OPEN
        circuit._failure_count = 4

        circuit.reset()

        assert circuit.state == CircuitState.CLOSED
        assert circuit.failure_count == 0

    def test_get_status(self):
        circuit = CircuitBreaker(failure_threshold=5, name="jira-test")
        status = circuit.get_status()

        assert status["name"] == "jira-test"
        assert status["state"] == "closed"
        assert status["failure_threshold"] == 5
        assert status["seconds_until_half_open"] is None


class TestCircuitBreakerCountedExceptions:
    """Only transient failures should trip the breaker."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            AuthenticationError("bad token", status_code=401),
            NotFoundError("missing"),
            RateLimitError("slow down", retry_after=5),
        ],
    )
    async def test_non_transient_errors_not_counted(self, error):
        circuit = CircuitBreaker(failure_threshold=1)

        with pytest.raises(type(error)):
            await circuit.call(AsyncMock(side_effect=error))

        assert circuit.state == CircuitState.CLOSED
        assert circuit.failure_count == 0


# ============================================
# Backoff Tests
# ============================================

class TestBackoffDelay:
    """Test exponential backoff delay calculation."""

    def test_doubles_per_attempt(self):
        assert backoff_delay(1) == 0.5
        assert backoff_delay(2) == 1.0
        assert backoff_delay(3) == 2.0

    def test_capped_at_max_delay(self):
        assert backoff_delay(20, initial_delay=1.0, max_delay=30.0) == 30.0

    def test_jitter_stays_within_bounds(self):
        for _ in range(20):
            delay = backoff_delay(3, initial_delay=1.0, max_delay=30.0, jitter=True)
            assert 2.0 <= delay < 6.0

    def test_rejects_attempt_below_one(self):
        with pytest.raises(ValueError):
            backoff_delay(0)


# ============================================
# Retry Tests
# ============================================

class TestRetryAsync:
    """Test inline retry of transient failures."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        func = AsyncMock(
            side_effect=[NetworkError("reset"), ServerError("oops", status_code=502), "done"]
        )

        with patch("src.jirasync.api.resilience.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await retry_async(func, max_attempts=3)

        assert result == "done"
        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self):
        func = AsyncMock(side_effect=NetworkError("down"))

        with patch("src.jirasync.api.resilience.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(NetworkError):
                await retry_async(func, max_attempts=2)

        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self):
        func = AsyncMock(side_effect=RateLimitError("slow down", retry_after=1))

        with pytest.raises(RateLimitError):
            await retry_async(func, max_attempts=5)

        assert func.await_count == 1
