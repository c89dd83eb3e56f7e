"""
Cache Domain Exceptions

Caller-usage errors. These are never converted into cache misses.
"""


class HashCacheError(Exception):
    """Base exception for hash cache usage errors."""


class MissingBlockError(HashCacheError, ValueError):
    """Raised when fetch is forced without a block to recompute the value."""

    def __init__(
        self,
        message: str = "Missing block: calling fetch_hash_value with force=True requires a block.",
    ):
        super().__init__(message)
