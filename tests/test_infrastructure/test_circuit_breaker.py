"""
Tests for the Redis circuit breaker state machine.
"""

import pytest

from hash_cache.infrastructure.redis.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitState,
    RedisCircuitBreaker,
)
from hash_cache.infrastructure.redis.exceptions import RedisCircuitBreakerOpenException


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return RedisCircuitBreaker(
        CircuitBreakerConfig(failure_threshold=3, recovery_timeout=10.0, success_threshold=2),
        clock=clock,
    )


async def fail(breaker):
    with pytest.raises(ConnectionError):
        async with breaker.guard():
            raise ConnectionError("down")


async def succeed(breaker):
    async with breaker.guard():
        pass


class TestCircuitBreaker:
    @pytest.mark.asyncio
    async def test_starts_closed(self, breaker):
        await succeed(breaker)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        for _ in range(3):
            await fail(breaker)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(RedisCircuitBreakerOpenException):
            await succeed(breaker)
        assert breaker.metrics.rejected_calls == 1

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        await fail(breaker)
        await fail(breaker)
        await succeed(breaker)
        await fail(breaker)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_after_recovery_timeout(self, breaker, clock):
        for _ in range(3):
            await fail(breaker)

        clock.now = 10.0
        await succeed(breaker)
        assert breaker.state == CircuitState.HALF_OPEN

        await succeed(breaker)
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_failure_in_half_open_reopens(self, breaker, clock):
        for _ in range(3):
            await fail(breaker)

        clock.now = 11.0
        await fail(breaker)

        assert breaker.state == CircuitState.OPEN
        assert breaker.metrics.circuit_opens == 2

    @pytest.mark.asyncio
    async def test_other_exceptions_do_not_count(self, breaker):
        for _ in range(5):
            with pytest.raises(KeyError):
                async with breaker.guard():
                    raise KeyError("not a store failure")

        assert breaker.state == CircuitState.CLOSED
        assert breaker.metrics.failed_calls == 0

    @pytest.mark.asyncio
    async def test_reset(self, breaker):
        for _ in range(3):
            await fail(breaker)

        await breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_status()["failure_count"] == 0
