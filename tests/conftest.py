"""
Main pytest configuration for hash cache tests.

Every test gets its own in-memory Redis server and its own store instance.
"""

from unittest.mock import AsyncMock

import fakeredis
from fakeredis import aioredis as fake_aioredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hash_cache.core.config import Settings
from hash_cache.core.instrumentation import Instrumenter
from hash_cache.infrastructure.redis.connection_factory import RedisConnectionFactory
from hash_cache.infrastructure.repositories.hash_entry_repository import (
    RedisHashEntryRepository,
)
from hash_cache.services.cache.hash_store import RedisHashStore


@pytest.fixture
def settings():
    """Settings with defaults, independent of the cached global instance."""
    return Settings(_env_file=None)


@pytest.fixture
def redis_client():
    """Fake async Redis client backed by a private server."""
    return fake_aioredis.FakeRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )


@pytest.fixture
def failing_client():
    """Client whose every command fails as if Redis were down."""
    client = AsyncMock()
    for command in ("hget", "hset", "hdel", "hgetall", "delete", "ping"):
        getattr(client, command).side_effect = RedisConnectionError(
            "Connection refused"
        )
    return client


@pytest.fixture
def connection_factory(redis_client, settings):
    return RedisConnectionFactory.from_client(redis_client, settings=settings)


@pytest.fixture
def reported_errors():
    """Errors delivered to the repository error handler."""
    return []


@pytest.fixture
def repository(connection_factory, reported_errors):
    return RedisHashEntryRepository(
        connection_factory,
        error_handler=lambda **details: reported_errors.append(details),
    )


@pytest.fixture
def instrumenter():
    return Instrumenter()


@pytest.fixture
def events(instrumenter):
    """Instrumentation events recorded during the test."""
    recorded = []
    instrumenter.subscribe(recorded.append)
    return recorded


@pytest.fixture
def store(repository, instrumenter):
    return RedisHashStore(repository, instrumenter=instrumenter)


@pytest.fixture
def failing_store(failing_client, settings, reported_errors, instrumenter):
    """Store whose Redis client raises on every command."""
    factory = RedisConnectionFactory.from_client(failing_client, settings=settings)
    repository = RedisHashEntryRepository(
        factory, error_handler=lambda **details: reported_errors.append(details)
    )
    return RedisHashStore(repository, instrumenter=instrumenter)
