"""Process-lifetime in-memory metadata cache."""

import logging
import time
from collections.abc import Callable

from powerhour.core.audio.tags import TagMetadata
from powerhour.core.caching.models import MetadataCacheEntry

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class MemoryMetadataCache:
    """
    In-memory metadata cache with a fixed TTL.

    No size bound; entries live until they expire, are invalidated, or the
    process ends.

    Args:
        ttl_seconds: Entry lifetime
        clock: Returns the current Unix time in seconds
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, MetadataCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, fingerprint: str) -> TagMetadata | None:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self._ttl_seconds):
            logger.debug("Metadata cache entry expired: %s", fingerprint)
            del self._entries[fingerprint]
            return None
        return entry.tags

    async def put(self, fingerprint: str, tags: TagMetadata) -> None:
        self._entries[fingerprint] = MetadataCacheEntry(
            fingerprint=fingerprint, tags=tags, captured_at=self._clock()
        )

    async def invalidate(self, fingerprint: str) -> None:
        self._entries.pop(fingerprint, None)

    async def clear(self) -> None:
        self._entries.clear()
