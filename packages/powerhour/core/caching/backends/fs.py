"""Durable metadata cache on top of core.io.

One JSON document per fingerprint, named by the fingerprint's SHA256 so
arbitrary paths map to safe filenames. Survives process restarts, which the
in-memory backend does not.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from powerhour.core.audio.tags import TagMetadata
from powerhour.core.caching.backends.memory import DEFAULT_TTL_SECONDS
from powerhour.core.caching.fingerprint import fingerprint_digest
from powerhour.core.caching.models import MetadataCacheEntry
from powerhour.core.io import AbsolutePath, FileSystem

logger = logging.getLogger(__name__)


class FSMetadataCache:
    """
    Async filesystem-backed metadata cache.

    The cache lazily initializes on first use.
    """

    def __init__(
        self,
        fs: FileSystem,
        root: AbsolutePath,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize filesystem metadata cache.

        Args:
            fs: Async filesystem implementation
            root: Absolute path to cache root directory
            ttl_seconds: Entry lifetime
            clock: Returns the current Unix time in seconds
        """
        self.fs = fs
        self.root = root
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Ensure the cache root exists. Safe to call multiple times."""
        async with self._init_lock:
            if not self._initialized:
                await self.fs.mkdirs(self.root, exist_ok=True)
                self._initialized = True

    def _entry_path(self, fingerprint: str) -> AbsolutePath:
        return self.fs.join(self.root, f"{fingerprint_digest(fingerprint)}.json")

    async def get(self, fingerprint: str) -> TagMetadata | None:
        await self.initialize()
        path = self._entry_path(fingerprint)
        if not await self.fs.exists(path):
            return None

        try:
            entry = MetadataCacheEntry.model_validate_json(await self.fs.read_text(path))
        except (FileNotFoundError, ValidationError, ValueError):
            logger.debug("Corrupt metadata cache entry for %s, treating as miss", fingerprint)
            await self.invalidate(fingerprint)
            return None

        # Digest collisions are practically impossible, but never serve another file's tags.
        if entry.fingerprint != fingerprint:
            return None

        if entry.is_expired(self._clock(), self._ttl_seconds):
            await self.invalidate(fingerprint)
            return None
        return entry.tags

    async def put(self, fingerprint: str, tags: TagMetadata) -> None:
        await self.initialize()
        entry = MetadataCacheEntry(fingerprint=fingerprint, tags=tags, captured_at=self._clock())
        try:
            await self.fs.write_text(self._entry_path(fingerprint), entry.model_dump_json())
        except OSError as e:
            # A cache write failure only costs a re-read of the tags later.
            logger.warning("Failed to persist metadata for %s: %s", fingerprint, e)

    async def invalidate(self, fingerprint: str) -> None:
        path = self._entry_path(fingerprint)
        if await self.fs.exists(path):
            await self.fs.remove(path)

    async def clear(self) -> None:
        await self.initialize()
        for name in await self.fs.listdir(self.root):
            if name.endswith(".json"):
                await self.fs.remove(self.fs.join(self.root, name))
