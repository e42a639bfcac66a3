"""Metadata cache for scanned audio files.

Tags are cached under a fingerprint of ``(path, modification time, size)``;
editing a file changes its fingerprint, so stale tags are never served.

Example:
    >>> cache = MemoryMetadataCache(ttl_seconds=86400)
    >>> key = fingerprint_for("/music/a.mp3", 1700000000000, 4_194_304)
    >>> await cache.put(key, TagMetadata(title="A"))
    >>> (await cache.get(key)).title
    'A'
"""

from powerhour.core.audio.tags import TagMetadata
from powerhour.core.caching.backends.fs import FSMetadataCache
from powerhour.core.caching.backends.memory import MemoryMetadataCache
from powerhour.core.caching.backends.null import NullMetadataCache
from powerhour.core.caching.fingerprint import fingerprint_for, stat_fingerprint
from powerhour.core.caching.models import MetadataCacheEntry
from powerhour.core.caching.protocols import MetadataCache

__all__ = [
    "FSMetadataCache",
    "MemoryMetadataCache",
    "MetadataCache",
    "MetadataCacheEntry",
    "NullMetadataCache",
    "TagMetadata",
    "fingerprint_for",
    "stat_fingerprint",
]
