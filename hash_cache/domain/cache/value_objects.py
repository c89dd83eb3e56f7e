"""
Cache Value Objects

Immutable value objects for the hash cache domain.
Per-call options, their merging with store-wide defaults, and
cache key/version expansion rules.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CacheOptions(BaseModel):
    """
    Options recognised by every hash cache operation.

    Options are never persisted. Unknown option names are rejected so that
    a misspelled option fails loudly instead of being ignored.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    namespace: Optional[Union[str, Callable[[], str]]] = Field(
        None, description="Prefix prepended to the hash key"
    )
    expires_in: Optional[float] = Field(
        None, description="Relative expiry in seconds, may be negative"
    )
    expires_at: Optional[float] = Field(
        None, description="Absolute expiry as a UNIX timestamp"
    )
    version: Optional[Any] = Field(None, description="Version tag to embed or compare")
    race_condition_ttl: Optional[int] = Field(
        None, description="Seconds an expired entry is kept alive during recompute"
    )
    force: bool = Field(False, description="Skip the cache read in fetch")
    skip_nil: bool = Field(False, description="Do not persist a None block result")
    raw: bool = Field(False, description="Store the value without an envelope")
    compress: bool = Field(True, description="Compress large structured entries")
    compress_threshold: int = Field(
        1024, ge=0, description="Envelope size in bytes before compression"
    )

    @field_validator("expires_at", mode="before")
    @classmethod
    def validate_expires_at(cls, v):
        if isinstance(v, datetime):
            return v.timestamp()
        return v

    @field_validator("race_condition_ttl", mode="before")
    @classmethod
    def validate_race_condition_ttl(cls, v):
        """Coerce to whole seconds."""
        if v is None:
            return v
        try:
            return int(float(v))
        except (TypeError, ValueError):
            raise ValueError("race_condition_ttl must be a number of seconds")

    @model_validator(mode="after")
    def validate_expiry(self) -> "CacheOptions":
        if self.expires_in is not None and self.expires_at is not None:
            raise ValueError(
                "Either expires_in or expires_at can be supplied, but not both"
            )
        return self

    def merge(
        self, overrides: Optional[Union["CacheOptions", Dict[str, Any]]] = None
    ) -> "CacheOptions":
        """
        Merge per-call overrides on top of these options.

        An explicit expires_at in the overrides replaces a default expires_in.

        Raises:
            pydantic.ValidationError: If an override is unknown or malformed
        """
        if not overrides:
            return self
        if isinstance(overrides, CacheOptions):
            overrides = overrides.model_dump(exclude_unset=True)

        base = self.model_dump(exclude_unset=True)
        if overrides.get("expires_at") is not None:
            base.pop("expires_in", None)
        if overrides.get("expires_in") is not None:
            base.pop("expires_at", None)

        return CacheOptions.model_validate({**base, **overrides})

    def resolved_namespace(self) -> Optional[str]:
        """Namespace value, calling it first when it is a callable."""
        namespace = self.namespace
        if callable(namespace):
            namespace = namespace()
        return namespace or None


def expand_cache_key(key: Any) -> str:
    """
    Expand a key object into its string form.

    Objects exposing ``cache_key()`` use it, lists and tuples are expanded
    element-wise and joined with ``/``.
    """
    if key is None:
        return ""
    cache_key = getattr(key, "cache_key", None)
    if cache_key is not None:
        return str(cache_key() if callable(cache_key) else cache_key)
    if isinstance(key, (list, tuple)):
        return "/".join(expand_cache_key(element) for element in key)
    return str(key)


def normalize_version(key: Any, options: CacheOptions) -> Optional[str]:
    """
    Version tag for a key: explicit option first, then ``key.cache_version``.
    """
    version = options.version
    if version is None:
        version = getattr(key, "cache_version", None)
        if callable(version):
            version = version()
    if version is None:
        return None
    if isinstance(version, (list, tuple)):
        return "/".join(str(part) for part in version)
    return str(version)
