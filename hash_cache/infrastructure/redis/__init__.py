"""
Redis Infrastructure Module

Connection management, circuit breaker, entry codecs and exceptions
for the Redis hash store.
"""

from .circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerMetrics,
    CircuitState,
    RedisCircuitBreaker,
)
from .codecs import RawCodec, StructuredCodec, select_codec
from .connection_factory import RedisConnectionFactory
from .exceptions import (
    RedisCircuitBreakerOpenException,
    RedisConfigurationException,
    RedisConnectionException,
    RedisException,
    RedisOperationTimeoutException,
)

__all__ = [
    # Connection management
    "RedisConnectionFactory",
    # Circuit breaker
    "RedisCircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "CircuitBreakerMetrics",
    # Codecs
    "RawCodec",
    "StructuredCodec",
    "select_codec",
    # Exceptions
    "RedisException",
    "RedisConnectionException",
    "RedisOperationTimeoutException",
    "RedisCircuitBreakerOpenException",
    "RedisConfigurationException",
]
