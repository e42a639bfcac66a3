"""Durable multi-library record store.

All libraries, the settings and the current-library pointer live in one
JSON document written atomically through ``core.io``. The store lazily loads
that document on first use; loading migrates legacy ids and drops expired
records.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from collections.abc import Callable
from pathlib import PurePath
from typing import Any

from pydantic import ValidationError

from powerhour.core.config.models import LibraryDefaults
from powerhour.core.errors import StorageFullError
from powerhour.core.io import AbsolutePath, FileSystem
from powerhour.core.library.ids import id_form, library_display_name, library_id
from powerhour.core.library.models import (
    AssetRecord,
    CacheStats,
    LibraryCacheRecord,
    LibrarySettings,
)

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "libraries.json"
_DAY_MS = 24 * 60 * 60 * 1000


class LibraryStore:
    """
    Persistent store of cached library scans.

    Args:
        fs: Async filesystem implementation
        root: Directory holding the store document
        defaults: Initial settings and eviction policy
        clock: Returns the current Unix time in seconds
    """

    def __init__(
        self,
        fs: FileSystem,
        root: AbsolutePath,
        defaults: LibraryDefaults | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        defaults = defaults or LibraryDefaults()
        self.fs = fs
        self.root = root
        self._clock = clock
        self._eviction_fraction = defaults.eviction_fraction
        self._default_settings = LibrarySettings(
            auto_refresh_enabled=defaults.auto_refresh_enabled,
            cache_expiry_days=defaults.cache_expiry_days,
            max_cache_size=defaults.max_cache_size,
        )
        self._libraries: dict[str, LibraryCacheRecord] = {}
        self._settings = self._default_settings
        self._current_id: str | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def document_path(self) -> AbsolutePath:
        return self.fs.join(self.root, DOCUMENT_NAME)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load the store document. Called automatically on first use."""
        async with self._init_lock:
            if self._initialized:
                return
            await self.fs.mkdirs(self.root, exist_ok=True)
            changed = await self._load()
            changed = self._migrate_ids() or changed
            changed = self._drop_expired() or changed
            self._initialized = True
            if changed:
                await self._persist()

    async def _load(self) -> bool:
        """Read the document; a corrupt document is discarded. Returns True if repaired."""
        if not await self.fs.exists(self.document_path):
            return False

        try:
            raw = json.loads(await self.fs.read_text(self.document_path))
        except (ValueError, FileNotFoundError) as e:
            logger.error("Library store document unreadable, starting empty: %s", e)
            return True
        if not isinstance(raw, dict):
            logger.error("Library store document has unexpected shape, starting empty")
            return True

        libraries = raw.get("libraries") or {}
        dropped = False
        for key, data in libraries.items():
            try:
                self._libraries[key] = LibraryCacheRecord.model_validate(data)
            except ValidationError as e:
                logger.warning("Dropping invalid library record %s: %s", key, e)
                dropped = True

        if isinstance(raw.get("settings"), dict):
            merged = {**self._default_settings.model_dump(), **raw["settings"]}
            try:
                self._settings = LibrarySettings.model_validate(merged)
            except ValidationError as e:
                logger.warning("Ignoring invalid library settings: %s", e)

        self._current_id = raw.get("currentLibraryId")
        logger.debug("Loaded %d libraries from %s", len(self._libraries), self.document_path)
        return dropped

    def _migrate_ids(self) -> bool:
        """Re-key records whose key is not the current derivation of their path."""
        migrations = [
            (key, record)
            for key, record in self._libraries.items()
            if key != library_id(record.path)
        ]
        for old_id, record in migrations:
            new_id = library_id(record.path)
            del self._libraries[old_id]
            self._libraries[new_id] = record.model_copy(update={"id": new_id})
            if self._current_id == old_id:
                self._current_id = new_id
            logger.info(
                "Migrated library %r from %s id %s to %s", record.name, id_form(old_id, record.path), old_id, new_id
            )
        return bool(migrations)

    def _drop_expired(self) -> bool:
        cutoff = self._now_ms() - self._settings.cache_expiry_days * _DAY_MS
        expired = [key for key, rec in self._libraries.items() if rec.last_scanned < cutoff]
        for key in expired:
            logger.info("Library cache expired: %s", self._libraries[key].path)
            self._remove_key(key)
        return bool(expired)

    def _remove_key(self, key: str) -> None:
        self._libraries.pop(key, None)
        if self._current_id == key:
            self._current_id = None

    def _serialize(self) -> str:
        document: dict[str, Any] = {
            "version": 1,
            "libraries": {key: rec.to_json_dict() for key, rec in self._libraries.items()},
            "settings": self._settings.to_json_dict(),
            "currentLibraryId": self._current_id,
        }
        return json.dumps(document)

    def _evict_oldest(self) -> list[str]:
        """Drop the oldest share of records by last scan time."""
        if not self._libraries:
            return []
        count = math.ceil(len(self._libraries) * self._eviction_fraction)
        oldest = sorted(self._libraries.values(), key=lambda rec: rec.last_scanned)[:count]
        for rec in oldest:
            self._remove_key(rec.id)
        logger.warning("Evicted %d oldest library caches to free storage", len(oldest))
        return [rec.id for rec in oldest]

    async def _write(self, content: str) -> None:
        if len(content.encode("utf-8")) > self._settings.max_cache_size:
            raise OSError(f"Library cache exceeds max_cache_size ({self._settings.max_cache_size} bytes)")
        await self.fs.write_text(self.document_path, content)

    async def _persist(self) -> None:
        """Write the document, evicting once and retrying on failure.

        Raises:
            StorageFullError: If the retry also fails
        """
        try:
            await self._write(self._serialize())
            return
        except OSError as e:
            logger.warning("Library store write failed (%s); evicting old caches", e)

        self._evict_oldest()
        try:
            await self._write(self._serialize())
        except OSError as e:
            raise StorageFullError(f"Could not save library cache even after cleanup: {e}") from e

    # ------------------------------------------------------------------
    # Library records
    # ------------------------------------------------------------------

    async def save_library(
        self,
        path: str | PurePath,
        songs: list[AssetRecord],
        name: str | None = None,
        make_current: bool = True,
    ) -> LibraryCacheRecord:
        """Store (or wholly replace) the scan of a folder."""
        await self.initialize()
        lib_id = library_id(path)
        record = LibraryCacheRecord(
            id=lib_id,
            name=name or library_display_name(path),
            path=str(path),
            songs=list(songs),
            last_scanned=self._now_ms(),
        )
        self._libraries[lib_id] = record
        if make_current:
            self._current_id = lib_id
        await self._persist()
        logger.info("Saved library %r (%d songs, %d bytes)", record.name, record.song_count, record.total_size)
        return record

    async def load_library(self, path: str | PurePath, make_current: bool = True) -> list[AssetRecord] | None:
        await self.initialize()
        record = self._libraries.get(library_id(path))
        if record is None:
            return None
        if make_current and self._current_id != record.id:
            self._current_id = record.id
            await self._persist()
        return list(record.songs)

    async def get_library(self, path: str | PurePath) -> LibraryCacheRecord | None:
        await self.initialize()
        return self._libraries.get(library_id(path))

    async def needs_refresh(self, path: str | PurePath) -> bool:
        """True when the folder was never scanned or its scan is older than the expiry."""
        await self.initialize()
        record = self._libraries.get(library_id(path))
        if record is None:
            return True
        return self._now_ms() - record.last_scanned > self._settings.cache_expiry_days * _DAY_MS

    async def remove_library(self, path: str | PurePath) -> bool:
        """Delete a record. Clears the current pointer if it pointed here."""
        await self.initialize()
        lib_id = library_id(path)
        if lib_id not in self._libraries:
            return False
        self._remove_key(lib_id)
        await self._persist()
        return True

    async def add_song_to_library(self, path: str | PurePath, song: AssetRecord) -> bool:
        """Insert or replace (by song path) one song in a cached library."""
        await self.initialize()
        lib_id = library_id(path)
        record = self._libraries.get(lib_id)
        if record is None:
            logger.warning("Cannot add song, library not cached: %s", path)
            return False

        songs = [s for s in record.songs if s.path != song.path]
        songs.append(song)
        self._libraries[lib_id] = record.replace_songs(songs, self._now_ms())
        await self._persist()
        return True

    async def update_song_metadata(
        self, path: str | PurePath, song_path: str, patch: dict[str, Any]
    ) -> bool:
        """Apply field updates to the song at ``song_path``. Returns True if one matched."""
        await self.initialize()
        lib_id = library_id(path)
        record = self._libraries.get(lib_id)
        if record is None:
            logger.warning("Cannot update song, library not cached: %s", path)
            return False

        matched = False
        songs: list[AssetRecord] = []
        for song in record.songs:
            if song.path == song_path:
                song = AssetRecord.model_validate({**song.model_dump(), **patch, "path": song.path})
                matched = True
            songs.append(song)

        if not matched:
            return False
        self._libraries[lib_id] = record.replace_songs(songs, record.last_scanned)
        await self._persist()
        return True

    async def update_library_metadata(self, path: str | PurePath, name: str) -> bool:
        await self.initialize()
        lib_id = library_id(path)
        record = self._libraries.get(lib_id)
        if record is None:
            return False
        self._libraries[lib_id] = record.model_copy(update={"name": name})
        await self._persist()
        return True

    async def get_all_libraries(self) -> list[LibraryCacheRecord]:
        """All records, most recently scanned first."""
        await self.initialize()
        return sorted(self._libraries.values(), key=lambda rec: rec.last_scanned, reverse=True)

    async def get_current_library(self) -> LibraryCacheRecord | None:
        await self.initialize()
        if self._current_id is None:
            return None
        return self._libraries.get(self._current_id)

    async def set_current_library(self, path: str | PurePath) -> bool:
        await self.initialize()
        lib_id = library_id(path)
        if lib_id not in self._libraries:
            return False
        self._current_id = lib_id
        await self._persist()
        return True

    # ------------------------------------------------------------------
    # Settings and maintenance
    # ------------------------------------------------------------------

    async def get_settings(self) -> LibrarySettings:
        await self.initialize()
        return self._settings

    async def update_settings(self, **changes: Any) -> LibrarySettings:
        await self.initialize()
        self._settings = LibrarySettings.model_validate({**self._settings.model_dump(), **changes})
        await self._persist()
        return self._settings

    async def get_cache_stats(self) -> CacheStats:
        await self.initialize()
        records = list(self._libraries.values())
        scanned = [rec.last_scanned for rec in records]
        return CacheStats(
            total_libraries=len(records),
            total_songs=sum(rec.song_count for rec in records),
            total_size=sum(rec.total_size for rec in records),
            oldest_cache=min(scanned) if scanned else None,
            newest_cache=max(scanned) if scanned else None,
        )

    async def clear_all(self) -> None:
        await self.initialize()
        self._libraries.clear()
        self._current_id = None
        await self._persist()
