"""
Redis Hash Store

Public cache API over Redis hashes. Many cache fields share one hash key
(the prefix), so a whole group can be dropped with a single command, while
every field still carries its own expiry and version inside the stored
entry envelope.
"""

import hashlib
import inspect
import logging
import time
from typing import Any, Callable, Dict, Optional

from ...core.config import Settings, get_settings
from ...core.instrumentation import Instrumenter
from ...domain.cache.entities import Entry
from ...domain.cache.exceptions import MissingBlockError
from ...domain.cache.repository_interfaces import EntryCodec, HashEntryRepository
from ...domain.cache.value_objects import (
    CacheOptions,
    expand_cache_key,
    normalize_version,
)
from ...infrastructure.redis.codecs import select_codec
from ...infrastructure.redis.connection_factory import RedisConnectionFactory
from ...infrastructure.repositories.hash_entry_repository import (
    ErrorHandler,
    RedisHashEntryRepository,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_KEY_BYTESIZE = 1024
# Room for the ":hash:<sha256>" suffix plus part of the key
MIN_MAX_KEY_BYTESIZE = 128


class RedisHashStore:
    """
    Hash-scoped cache store.

    Every operation merges per-call options over the store defaults and
    normalizes the prefix before touching Redis. Store outages look like
    cache misses to callers; watch the repository error handler for them.
    """

    def __init__(
        self,
        repository: HashEntryRepository,
        default_options: Optional[CacheOptions] = None,
        instrumenter: Optional[Instrumenter] = None,
        max_key_bytesize: int = DEFAULT_MAX_KEY_BYTESIZE,
    ):
        self.repository = repository
        self.options = default_options or CacheOptions()
        self.instrumenter = instrumenter or Instrumenter()
        if max_key_bytesize < MIN_MAX_KEY_BYTESIZE:
            raise ValueError(
                f"max_key_bytesize must be at least {MIN_MAX_KEY_BYTESIZE}, got {max_key_bytesize}"
            )
        self.max_key_bytesize = max_key_bytesize

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[Any] = None,
        error_handler: Optional[ErrorHandler] = None,
        instrumenter: Optional[Instrumenter] = None,
    ) -> "RedisHashStore":
        """Build a store with a pooled connection factory configured from settings."""
        settings = settings or get_settings()
        connection_factory = RedisConnectionFactory(settings=settings, client=client)
        return cls(
            RedisHashEntryRepository(connection_factory, error_handler=error_handler),
            default_options=settings.default_cache_options(),
            instrumenter=instrumenter,
            max_key_bytesize=settings.CACHE_MAX_KEY_BYTESIZE,
        )

    async def write_hash_value(self, prefix: Any, key: Any, value: Any, **options) -> bool:
        """
        Store value in field ``key`` of group ``prefix``.

        Returns:
            False when the store could not be reached, True otherwise
        """
        options = self.merged_options(options)
        return await self._write_hash_value(prefix, key, value, options)

    async def read_hash_value(self, prefix: Any, key: Any, **options) -> Any:
        """
        Read field ``key`` of group ``prefix``.

        Expired fields are deleted and read as a miss. A version mismatch is
        a miss but leaves the field in place.
        """
        options = self.merged_options(options)
        name = self.normalize_key(prefix, options)
        field = expand_cache_key(key)
        version = normalize_version(prefix, options)

        with self.instrumenter.instrument("read_hash_value", name, field) as payload:
            entry = await self.repository.get_field(name, field, self._codec(options))

            if entry is None:
                payload["hit"] = False
                return None

            if entry.expired():
                await self.repository.delete_field(name, field)
                payload["hit"] = False
                return None

            if entry.mismatched(version):
                payload["hit"] = False
                return None

            payload["hit"] = True
            return entry.value

    async def fetch_hash_value(
        self,
        prefix: Any,
        key: Any,
        block: Optional[Callable[[], Any]] = None,
        **options,
    ) -> Any:
        """
        Read a field, recomputing and storing it on a miss.

        ``block`` is called with no arguments and may be a plain or an async
        callable; bind any context it needs with a closure or
        ``functools.partial``. Without a block this is ``read_hash_value``.

        Raises:
            MissingBlockError: If ``force=True`` is given without a block
        """
        merged = self.merged_options(options)

        if block is None:
            if merged.force:
                raise MissingBlockError()
            return await self.read_hash_value(prefix, key, **options)

        name = self.normalize_key(prefix, merged)
        field = expand_cache_key(key)
        codec = self._codec(merged)

        entry = None
        with self.instrumenter.instrument("read_hash", name, field) as payload:
            if not merged.force:
                entry = await self.repository.get_field(name, field, codec)
            entry = await self._handle_expired_hash_entry(entry, name, field, merged, codec)
            if entry is not None and entry.mismatched(normalize_version(prefix, merged)):
                entry = None
            payload["super_operation"] = "fetch_hash_value"
            payload["hit"] = entry is not None

        if entry is not None:
            with self.instrumenter.instrument("fetch_hit", name, field):
                return entry.value

        return await self._save_hash_block_result_to_cache(
            prefix, key, name, field, block, merged
        )

    async def delete_hash_value(self, prefix: Any, key: Any, **options) -> bool:
        """
        Delete one field. Deleting an absent field succeeds.

        Returns:
            False when the store could not be reached, True otherwise
        """
        options = self.merged_options(options)
        name = self.normalize_key(prefix, options)
        field = expand_cache_key(key)

        with self.instrumenter.instrument("delete_hash_value", name, field):
            return await self.repository.delete_field(name, field)

    async def read_hash(self, prefix: Any, **options) -> Dict[str, Any]:
        """
        Read every live field of a group as a ``key -> value`` dict.

        Expired fields are deleted one by one and left out. Versions are not
        checked.
        """
        options = self.merged_options(options)
        name = self.normalize_key(prefix, options)

        with self.instrumenter.instrument("read_hash", name):
            entries = await self.repository.get_all_fields(name, self._codec(options))

            now = time.time()
            values = {}
            for field, entry in entries.items():
                if entry.expired(now):
                    await self.repository.delete_field(name, field)
                else:
                    values[field] = entry.value
            return values

    async def delete_hash(self, prefix: Any, **options) -> bool:
        """Delete a whole group in one command."""
        options = self.merged_options(options)
        name = self.normalize_key(prefix, options)

        with self.instrumenter.instrument("delete_hash", name):
            return await self.repository.delete_group(name)

    def merged_options(self, options: Optional[Dict[str, Any]] = None) -> CacheOptions:
        """Per-call options merged over the store defaults."""
        return self.options.merge(options)

    def normalize_key(self, key: Any, options: CacheOptions) -> str:
        """Expand, namespace and, when too long, truncate a hash key."""
        name = expand_cache_key(key)
        namespace = options.resolved_namespace()
        if namespace:
            name = f"{namespace}:{name}"
        return self._truncate_key(name)

    def _truncate_key(self, key: str) -> str:
        encoded = key.encode("utf-8")
        if len(encoded) <= self.max_key_bytesize:
            return key

        suffix = f":hash:{hashlib.sha256(encoded).hexdigest()}"
        truncate_at = self.max_key_bytesize - len(suffix)
        return encoded[:truncate_at].decode("utf-8", errors="ignore") + suffix

    def _codec(self, options: CacheOptions) -> EntryCodec:
        return select_codec(
            raw=options.raw,
            compress=options.compress,
            compress_threshold=options.compress_threshold,
        )

    async def _write_hash_value(
        self, prefix: Any, key: Any, value: Any, options: CacheOptions
    ) -> bool:
        name = self.normalize_key(prefix, options)
        field = expand_cache_key(key)

        with self.instrumenter.instrument("write_hash_value", name, field):
            entry = Entry.build(value, options, version=normalize_version(prefix, options))
            return await self.repository.set_field(name, field, entry, self._codec(options))

    async def _handle_expired_hash_entry(
        self,
        entry: Optional[Entry],
        name: str,
        field: str,
        options: CacheOptions,
        codec: EntryCodec,
    ) -> Optional[Entry]:
        if entry is None or not entry.expired():
            return entry

        now = time.time()
        race_ttl = options.race_condition_ttl or 0
        if race_ttl > 0 and entry.expired_for(now) <= race_ttl:
            # Keep the stale entry visible to other readers while this caller recomputes
            entry.extend(race_ttl, now)
            await self.repository.set_field(name, field, entry, codec)
            logger.debug(
                "Extended stale hash entry during recompute",
                extra={"prefix": name, "key": field, "race_condition_ttl": race_ttl},
            )
        else:
            await self.repository.delete_field(name, field)
        return None

    async def _save_hash_block_result_to_cache(
        self,
        prefix: Any,
        key: Any,
        name: str,
        field: str,
        block: Callable[[], Any],
        options: CacheOptions,
    ) -> Any:
        with self.instrumenter.instrument("generate", name, field):
            result = block()
            if inspect.isawaitable(result):
                result = await result

        if not (result is None and options.skip_nil):
            await self._write_hash_value(prefix, key, result, options)
        return result
