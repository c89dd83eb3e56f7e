"""
Hash Cache

Redis hash-backed cache store with per-field expiry, versioning and
race-condition TTL handling.
"""

from .core.config import Settings, get_settings
from .core.instrumentation import InstrumentationEvent, Instrumenter
from .domain.cache.entities import Entry
from .domain.cache.exceptions import HashCacheError, MissingBlockError
from .domain.cache.value_objects import CacheOptions
from .infrastructure.redis.connection_factory import RedisConnectionFactory
from .infrastructure.repositories.hash_entry_repository import RedisHashEntryRepository
from .services.cache.hash_store import RedisHashStore

__all__ = [
    "RedisHashStore",
    "RedisHashEntryRepository",
    "RedisConnectionFactory",
    "CacheOptions",
    "Entry",
    "Instrumenter",
    "InstrumentationEvent",
    "HashCacheError",
    "MissingBlockError",
    "Settings",
    "get_settings",
]

__version__ = "0.1.0"
