"""Models for the metadata cache."""

from pydantic import BaseModel, Field

from powerhour.core.audio.tags import TagMetadata


class MetadataCacheEntry(BaseModel):
    """Tags captured for one fingerprint."""

    fingerprint: str = Field(description="path:mtimeMs:size")
    tags: TagMetadata
    captured_at: float = Field(description="Unix timestamp (seconds)")

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.captured_at > ttl_seconds
