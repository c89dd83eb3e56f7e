"""
Cache Domain Entities

The cache entry envelope stored in every hash field: a value together
with its absolute expiry and version tag.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .value_objects import CacheOptions


@dataclass
class Entry:
    """
    Cache entry entity.

    Value and version never change after construction. ``expires_at`` may be
    pushed forward once, when a stale entry is kept alive during recompute.
    """

    value: Any
    expires_at: Optional[float] = None
    version: Optional[str] = None
    _extended: bool = field(default=False, init=False, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        value: Any,
        options: CacheOptions,
        version: Optional[str] = None,
        now: Optional[float] = None,
    ) -> "Entry":
        """Create a new entry, computing expiry from the options."""
        if options.expires_at is not None:
            expires_at = options.expires_at
        elif options.expires_in is not None:
            expires_at = (now if now is not None else time.time()) + options.expires_in
        else:
            expires_at = None

        return cls(value=value, expires_at=expires_at, version=version)

    def expired(self, now: Optional[float] = None) -> bool:
        """Check if entry is expired."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now if now is not None else time.time())

    def mismatched(self, version: Optional[str]) -> bool:
        """Check if entry was written for a different version."""
        return bool(self.version and version and self.version != version)

    def expired_for(self, now: Optional[float] = None) -> float:
        """Seconds elapsed since expiry (negative while still fresh)."""
        if self.expires_at is None:
            return float("-inf")
        return (now if now is not None else time.time()) - self.expires_at

    def extend(self, ttl: float, now: Optional[float] = None) -> None:
        """
        Push expiry to ``now + ttl``.

        Raises:
            ValueError: If the entry was already extended
        """
        if self._extended:
            raise ValueError("Cache entry expiry can only be extended once")
        self.expires_at = (now if now is not None else time.time()) + ttl
        self._extended = True
