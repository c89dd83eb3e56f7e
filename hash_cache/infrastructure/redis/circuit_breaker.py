"""
Redis Circuit Breaker

Stops sending commands to Redis after repeated connection failures so
that cache calls degrade to misses immediately instead of waiting on
socket timeouts.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .exceptions import RedisCircuitBreakerOpenException

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    # Consecutive failures before opening
    failure_threshold: int = 5

    # Seconds to wait before letting a trial call through
    recovery_timeout: float = 30.0

    # Successful trial calls needed to close again
    success_threshold: int = 1

    # Exception types counted as failures
    failure_exceptions: tuple = (
        ConnectionError,
        TimeoutError,
        OSError,
    )


@dataclass
class CircuitBreakerMetrics:
    """Counters for circuit breaker monitoring."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    circuit_opens: int = 0

    @property
    def failure_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.failed_calls / self.total_calls


class RedisCircuitBreaker:
    """
    Circuit breaker guarding Redis round trips.

    Usage::

        async with breaker.guard():
            await client.hget(name, key)
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.opened_at: Optional[float] = None
        self.metrics = CircuitBreakerMetrics()
        self._clock = clock
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def guard(self):
        """
        Run the enclosed block under circuit breaker protection.

        Raises:
            RedisCircuitBreakerOpenException: If circuit is open
        """
        await self._before_call()
        try:
            yield
        except self.config.failure_exceptions as e:
            await self._record_failure(type(e).__name__)
            raise
        await self._record_success()

    async def _before_call(self) -> None:
        async with self._lock:
            self.metrics.total_calls += 1
            if self.state != CircuitState.OPEN:
                return

            if self._clock() - (self.opened_at or 0) >= self.config.recovery_timeout:
                self.state = CircuitState.HALF_OPEN
                self.success_count = 0
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN",
                    extra={"failure_count": self.failure_count},
                )
                return

            self.metrics.rejected_calls += 1
            raise RedisCircuitBreakerOpenException()

    async def _record_success(self) -> None:
        async with self._lock:
            self.metrics.successful_calls += 1

            if self.state == CircuitState.HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.config.success_threshold:
                    self.state = CircuitState.CLOSED
                    self.failure_count = 0
                    self.success_count = 0
                    self.opened_at = None
                    logger.info("Circuit breaker closed after successful recovery")
            else:
                self.failure_count = 0

    async def _record_failure(self, failure_type: str) -> None:
        async with self._lock:
            self.metrics.failed_calls += 1

            if self.state == CircuitState.HALF_OPEN:
                self._open(failure_type)
                return

            self.failure_count += 1
            if (
                self.state == CircuitState.CLOSED
                and self.failure_count >= self.config.failure_threshold
            ):
                self._open(failure_type)

    def _open(self, failure_type: str) -> None:
        self.state = CircuitState.OPEN
        self.opened_at = self._clock()
        self.success_count = 0
        self.metrics.circuit_opens += 1
        logger.warning(
            "Circuit breaker opened",
            extra={
                "failure_type": failure_type,
                "failure_count": self.failure_count,
                "threshold": self.config.failure_threshold,
            },
        )

    def get_status(self) -> dict:
        """Get current circuit breaker status for monitoring."""
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "opened_at": self.opened_at,
            "metrics": {
                "total_calls": self.metrics.total_calls,
                "successful_calls": self.metrics.successful_calls,
                "failed_calls": self.metrics.failed_calls,
                "rejected_calls": self.metrics.rejected_calls,
                "failure_rate": self.metrics.failure_rate,
                "circuit_opens": self.metrics.circuit_opens,
            },
        }

    async def reset(self) -> None:
        """Manually reset circuit breaker to closed state."""
        async with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.success_count = 0
            self.opened_at = None
            logger.info("Circuit breaker manually reset to CLOSED state")
