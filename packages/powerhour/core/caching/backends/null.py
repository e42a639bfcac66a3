"""No-op metadata cache (always misses)."""

from powerhour.core.audio.tags import TagMetadata


class NullMetadataCache:
    """Metadata cache that never stores anything; every scan re-reads tags."""

    async def get(self, fingerprint: str) -> TagMetadata | None:
        return None

    async def put(self, fingerprint: str, tags: TagMetadata) -> None:
        return None

    async def invalidate(self, fingerprint: str) -> None:
        return None

    async def clear(self) -> None:
        return None
