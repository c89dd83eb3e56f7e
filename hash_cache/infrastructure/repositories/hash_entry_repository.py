"""
Redis Hash Entry Repository

Infrastructure implementation of the hash entry repository.
Maps one Entry to one field of one Redis hash. Every store round trip runs
behind a failsafe boundary that turns communication failures into safe
defaults instead of exceptions.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from redis.exceptions import RedisError

from ...domain.cache.entities import Entry
from ...domain.cache.repository_interfaces import EntryCodec, HashEntryRepository
from ..redis.codecs import as_text
from ..redis.connection_factory import RedisConnectionFactory
from ..redis.exceptions import RedisException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Store communication failures. Anything else is a programming error and propagates.
STORE_FAILURES = (RedisError, RedisException, ConnectionError, asyncio.TimeoutError)

ErrorHandler = Callable[..., Any]


class FailsafeResult:
    """Holds the value a failsafe block produced, or its default."""

    def __init__(self, value: Any):
        self.value = value


class RedisHashEntryRepository(HashEntryRepository):
    """Redis implementation of the hash entry repository."""

    def __init__(
        self,
        connection_factory: RedisConnectionFactory,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.connection_factory = connection_factory
        self.error_handler = error_handler

    @asynccontextmanager
    async def failsafe(self, method: str, returning: Any = None):
        """
        Contain store failures raised inside the block.

        The block stores its result on the yielded holder; on failure the
        holder keeps ``returning`` and the error is logged and reported.
        """
        result = FailsafeResult(returning)
        with tracer.start_as_current_span(f"hash_cache.{method}") as span:
            try:
                yield result
            except STORE_FAILURES as e:
                result.value = returning
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                logger.warning(
                    f"Hash cache {method} failed, returning {returning!r}: {e}",
                    extra={
                        "method": method,
                        "error_type": type(e).__name__,
                    },
                )
                self._report_error(method, returning, e)

    def _report_error(self, method: str, returning: Any, exception: Exception) -> None:
        if self.error_handler is None:
            return
        try:
            self.error_handler(method=method, returning=returning, exception=exception)
        except Exception:
            logger.exception(f"Hash cache error handler raised for {method}")

    async def get_field(
        self, prefix: str, key: str, codec: EntryCodec
    ) -> Optional[Entry]:
        """Read one field."""
        async with self.failsafe("read_hash_entry") as result:
            async with self.connection_factory.connection() as client:
                payload = await client.hget(prefix, key)
            result.value = codec.deserialize(payload)
        return result.value

    async def set_field(
        self, prefix: str, key: str, entry: Entry, codec: EntryCodec
    ) -> bool:
        """Write one field."""
        serialized_entry = codec.serialize(entry)

        async with self.failsafe("write_hash_entry", returning=False) as result:
            async with self.connection_factory.connection() as client:
                await client.hset(prefix, key, serialized_entry)
            result.value = True
        return result.value

    async def delete_field(self, prefix: str, key: str) -> bool:
        """Delete one field. Deleting an absent field succeeds."""
        async with self.failsafe("delete_hash_entry", returning=False) as result:
            async with self.connection_factory.connection() as client:
                await client.hdel(prefix, key)
            result.value = True
        return result.value

    async def get_all_fields(
        self, prefix: str, codec: EntryCodec
    ) -> Dict[str, Entry]:
        """Read every decodable field of a group."""
        async with self.failsafe("read_hash_entries", returning={}) as result:
            async with self.connection_factory.connection() as client:
                rows = await client.hgetall(prefix)

            entries = {}
            for key, payload in rows.items():
                entry = codec.deserialize(payload)
                if entry is not None:
                    entries[as_text(key)] = entry
            result.value = entries
        return result.value

    async def delete_group(self, prefix: str) -> bool:
        """Delete the whole hash key with a single DEL."""
        async with self.failsafe("delete_hash_entries", returning=False) as result:
            async with self.connection_factory.connection() as client:
                await client.delete(prefix)
            result.value = True
        return result.value
