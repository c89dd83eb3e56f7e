"""
Entry Codecs

Strategies for turning an Entry into the string stored in a hash field.
RawCodec stores the bare value; StructuredCodec stores a pickled envelope
with expiry and version, base64-encoded and zlib-compressed above a size
threshold.
"""

import base64
import binascii
import logging
import pickle
import zlib
from typing import Optional, Union

from ...domain.cache.entities import Entry
from ...domain.cache.repository_interfaces import EntryCodec

logger = logging.getLogger(__name__)

COMPRESSED_MARKER = "z:"
PLAIN_MARKER = "p:"

DECODE_ERRORS = (
    ValueError,
    TypeError,
    AttributeError,
    EOFError,
    ImportError,
    IndexError,
    KeyError,
    binascii.Error,
    pickle.UnpicklingError,
    zlib.error,
)


def as_text(payload: Union[str, bytes, None]) -> Optional[str]:
    """Clients built without ``decode_responses`` hand back bytes."""
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return payload


class RawCodec(EntryCodec):
    """Stores ``str(value)`` only; expiry and version are not recoverable."""

    def serialize(self, entry: Entry) -> str:
        return str(entry.value)

    def deserialize(self, payload: Union[str, bytes, None]) -> Optional[Entry]:
        if payload is None:
            return None
        try:
            return Entry(value=as_text(payload))
        except UnicodeDecodeError as e:
            logger.warning(f"Discarding non UTF-8 raw cache entry: {e}")
            return None


class StructuredCodec(EntryCodec):
    """Pickle envelope codec with optional compression."""

    def __init__(self, compress: bool = True, compress_threshold: int = 1024):
        self.compress = compress
        self.compress_threshold = compress_threshold

    def serialize(self, entry: Entry) -> str:
        data = pickle.dumps(
            {
                "value": entry.value,
                "expires_at": entry.expires_at,
                "version": entry.version,
            },
            protocol=pickle.HIGHEST_PROTOCOL,
        )
        plain = PLAIN_MARKER + base64.b64encode(data).decode("ascii")

        if self.compress and len(data) > self.compress_threshold:
            compressed = COMPRESSED_MARKER + base64.b64encode(
                zlib.compress(data)
            ).decode("ascii")
            if len(compressed) < len(plain):
                return compressed

        return plain

    def deserialize(self, payload: Union[str, bytes, None]) -> Optional[Entry]:
        if payload is None:
            return None

        try:
            text = as_text(payload)
            if text.startswith(COMPRESSED_MARKER):
                data = zlib.decompress(
                    base64.b64decode(text[len(COMPRESSED_MARKER) :], validate=True)
                )
            elif text.startswith(PLAIN_MARKER):
                data = base64.b64decode(text[len(PLAIN_MARKER) :], validate=True)
            else:
                raise ValueError("unknown envelope marker")

            row = pickle.loads(data)
            if not isinstance(row, dict) or "value" not in row:
                raise ValueError("envelope is not a mapping with a value")

            expires_at = row.get("expires_at")
            version = row.get("version")
            if expires_at is not None and not isinstance(expires_at, (int, float)):
                raise ValueError("expires_at is not a timestamp")
            if version is not None and not isinstance(version, str):
                raise ValueError("version is not a string")

        except DECODE_ERRORS as e:
            logger.warning(
                f"Discarding undecodable cache entry: {e}",
                extra={"payload_size": len(payload)},
            )
            return None

        return Entry(
            value=row["value"],
            expires_at=float(expires_at) if expires_at is not None else None,
            version=version,
        )


def select_codec(
    raw: bool = False, compress: bool = True, compress_threshold: int = 1024
) -> EntryCodec:
    """Choose the codec for a call."""
    if raw:
        return RawCodec()
    return StructuredCodec(compress=compress, compress_threshold=compress_threshold)
