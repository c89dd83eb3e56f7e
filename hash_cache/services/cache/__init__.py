"""
Cache Services

Public hash cache store.
"""

from .hash_store import RedisHashStore

__all__ = ["RedisHashStore"]
