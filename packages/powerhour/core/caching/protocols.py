"""Metadata cache protocol."""

from typing import Protocol

from powerhour.core.audio.tags import TagMetadata


class MetadataCache(Protocol):
    """Read-through store of extracted tags keyed by file fingerprint."""

    async def get(self, fingerprint: str) -> TagMetadata | None:
        """Return cached tags, or None on a miss. Expired entries are deleted."""
        ...

    async def put(self, fingerprint: str, tags: TagMetadata) -> None:
        """Insert or overwrite the entry for a fingerprint."""
        ...

    async def invalidate(self, fingerprint: str) -> None:
        """Drop one entry if present."""
        ...

    async def clear(self) -> None:
        """Drop every entry."""
        ...
