"""
Cache Repository Interfaces

Abstract contracts for hash entry persistence and entry encoding.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from .entities import Entry


class EntryCodec(ABC):
    """Converts an Entry to and from the string stored in a hash field."""

    @abstractmethod
    def serialize(self, entry: Entry) -> str:
        """Encode entry for storage."""
        pass

    @abstractmethod
    def deserialize(self, payload: Optional[str]) -> Optional[Entry]:
        """Decode a stored payload. Returns None for missing or undecodable data."""
        pass


class HashEntryRepository(ABC):
    """
    Abstract repository mapping entries to fields of hash groups.

    Implementations MUST NOT raise on store communication failures;
    they return the documented default instead.
    """

    @abstractmethod
    async def get_field(
        self, prefix: str, key: str, codec: EntryCodec
    ) -> Optional[Entry]:
        """Read one field. Returns None when absent or on failure."""
        pass

    @abstractmethod
    async def set_field(
        self, prefix: str, key: str, entry: Entry, codec: EntryCodec
    ) -> bool:
        """Write one field. Returns False on failure."""
        pass

    @abstractmethod
    async def delete_field(self, prefix: str, key: str) -> bool:
        """Delete one field. Returns False on failure."""
        pass

    @abstractmethod
    async def get_all_fields(
        self, prefix: str, codec: EntryCodec
    ) -> Dict[str, Entry]:
        """Read every field of a group. Returns {} on failure."""
        pass

    @abstractmethod
    async def delete_group(self, prefix: str) -> bool:
        """Delete the whole hash key. Returns False on failure."""
        pass
