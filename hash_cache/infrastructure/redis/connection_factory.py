"""
Redis Connection Factory

Owns the Redis connection pool and hands out clients for the duration of
one store round trip. Clients are released on every exit path.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
)

from ...core.config import Settings, get_settings
from .circuit_breaker import CircuitBreakerConfig, RedisCircuitBreaker
from .exceptions import (
    RedisConfigurationException,
    RedisConnectionException,
    RedisOperationTimeoutException,
)

logger = logging.getLogger(__name__)


class RedisConnectionFactory:
    """
    Factory for scoped Redis connections.

    Either builds a connection pool from settings on first use, or wraps an
    externally owned client (which it never closes).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[Any] = None,
        circuit_breaker: Optional[RedisCircuitBreaker] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self._pool: Optional[ConnectionPool] = None
        self._circuit_breaker = circuit_breaker or RedisCircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=self.settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                recovery_timeout=self.settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
                failure_exceptions=(
                    RedisConnectionError,
                    RedisAuthError,
                    RedisTimeoutError,
                    ConnectionError,
                    asyncio.TimeoutError,
                    OSError,
                ),
            )
        )
        self._lock = asyncio.Lock()

    @classmethod
    def from_client(cls, client: Any, **kwargs) -> "RedisConnectionFactory":
        """Build a factory around an existing client, e.g. a test double."""
        return cls(client=client, **kwargs)

    @property
    def circuit_breaker(self) -> RedisCircuitBreaker:
        return self._circuit_breaker

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        async with self._lock:
            if self._pool is None:
                try:
                    self._pool = ConnectionPool.from_url(
                        self.settings.REDIS_URL,
                        encoding="utf-8",
                        decode_responses=True,
                        socket_connect_timeout=self.settings.REDIS_CONNECTION_TIMEOUT,
                        socket_timeout=self.settings.REDIS_OPERATION_TIMEOUT,
                        health_check_interval=self.settings.REDIS_HEALTH_CHECK_INTERVAL,
                        max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                    )
                except ValueError as e:
                    raise RedisConfigurationException(
                        message=f"Invalid Redis URL: {e}",
                        config_key="REDIS_URL",
                        config_value=self.settings.REDIS_URL,
                        original_error=e,
                    )

                logger.info(
                    "Redis connection pool created",
                    extra={"max_connections": self.settings.REDIS_MAX_CONNECTIONS},
                )
        return self._pool

    @asynccontextmanager
    async def connection(self):
        """
        Acquire a Redis client for one round trip.

        Yields:
            Redis client instance

        Raises:
            RedisConnectionException: If the store cannot be reached
            RedisOperationTimeoutException: If the round trip times out
            RedisCircuitBreakerOpenException: If circuit breaker is open
        """
        if self._client is not None:
            async with self._translate_errors():
                async with self._circuit_breaker.guard():
                    yield self._client
            return

        pool = await self._get_pool()
        client = Redis(connection_pool=pool)
        try:
            async with self._translate_errors():
                async with self._circuit_breaker.guard():
                    yield client
        finally:
            await client.aclose()

    @asynccontextmanager
    async def _translate_errors(self):
        try:
            yield
        except (RedisTimeoutError, asyncio.TimeoutError) as e:
            logger.error(f"Redis operation timed out: {e}")
            raise RedisOperationTimeoutException(
                timeout_seconds=self.settings.REDIS_OPERATION_TIMEOUT,
                original_error=e,
            )
        except (RedisConnectionError, RedisAuthError, ConnectionError, OSError) as e:
            logger.error(f"Redis connection error: {e}")
            raise RedisConnectionException(
                message=f"Redis connection failed: {str(e)}", original_error=e
            )

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping Redis and report circuit breaker state.

        Returns:
            Health check results
        """
        health_status: Dict[str, Any] = {
            "status": "unhealthy",
            "timestamp": time.time(),
            "circuit_breaker": self._circuit_breaker.get_status(),
        }

        try:
            start_time = time.time()
            async with self.connection() as client:
                await client.ping()
            health_status["response_time_ms"] = round(
                (time.time() - start_time) * 1000, 2
            )
            health_status["status"] = (
                "healthy"
                if self._circuit_breaker.get_status()["state"] == "closed"
                else "degraded"
            )
        except Exception as e:
            health_status["error"] = str(e)
            logger.error(f"Redis health check failed: {e}")

        return health_status

    async def close(self) -> None:
        """Disconnect the owned connection pool."""
        async with self._lock:
            if self._pool is not None:
                await self._pool.disconnect()
                self._pool = None
                logger.info("Redis connection pool closed")
