"""Recursive library scanner.

Walks a folder tree, keeps files with a supported audio extension, and
builds an AssetRecord per file. Tags come from the metadata cache when the
file's fingerprint is known; otherwise they are read from the file and
cached. A scan is cancelled cooperatively through its ScanToken.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from powerhour.core.audio.tags import TagMetadata, extract_tags
from powerhour.core.caching import MetadataCache, stat_fingerprint
from powerhour.core.config.models import SUPPORTED_AUDIO_EXTENSIONS
from powerhour.core.errors import NotFoundError, ScanCancelledError
from powerhour.core.library.models import AssetRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanProgress:
    processed_count: int
    current_file_name: str


ProgressCallback = Callable[[ScanProgress], None | Awaitable[None]]
TagReader = Callable[[Path], TagMetadata]


class ScanToken:
    """Cancellation flag owned by a single scan."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScanCancelledError()


@dataclass
class _ScanState:
    token: ScanToken
    on_progress: ProgressCallback | None
    records: list[AssetRecord] = field(default_factory=list)
    processed: int = 0


class LibraryScanner:
    """
    Scans folders for audio files.

    Args:
        cache: Metadata cache consulted before reading tags
        extensions: Allowed file suffixes (case-insensitive)
        progress_interval: Report progress every N processed files
        tag_reader: Reads tags from one file; may raise on unreadable files
    """

    def __init__(
        self,
        cache: MetadataCache,
        extensions: Iterable[str] = SUPPORTED_AUDIO_EXTENSIONS,
        progress_interval: int = 10,
        tag_reader: TagReader = extract_tags,
    ) -> None:
        self._cache = cache
        self._extensions = frozenset(ext.lower() for ext in extensions)
        self._progress_interval = progress_interval
        self._tag_reader = tag_reader

    def is_supported(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self._extensions

    async def scan(
        self,
        root: str | Path,
        on_progress: ProgressCallback | None = None,
        token: ScanToken | None = None,
    ) -> list[AssetRecord]:
        """
        Scan ``root`` recursively.

        Args:
            root: Folder to scan
            on_progress: Called (or awaited) every ``progress_interval`` files
            token: Cancellation token for this scan

        Returns:
            Asset records in directory-walk order

        Raises:
            NotFoundError: If ``root`` is not a directory
            ScanCancelledError: If the token was cancelled; no partial list is returned
        """
        root_path = Path(root)
        if not await asyncio.to_thread(root_path.is_dir):
            raise NotFoundError(f"Library folder not found: {root_path}")

        state = _ScanState(token=token or ScanToken(), on_progress=on_progress)
        logger.info("Scanning library %s", root_path)
        await self._scan_directory(root_path, state)
        logger.info("Scan of %s found %d audio files", root_path, len(state.records))
        return state.records

    async def _scan_directory(self, directory: Path, state: _ScanState) -> None:
        try:
            entries = await asyncio.to_thread(_list_entries, directory)
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            return

        for entry_path, is_dir in entries:
            state.token.raise_if_cancelled()

            if is_dir:
                await self._scan_directory(entry_path, state)
                continue
            if not self.is_supported(entry_path):
                continue

            record = await self._scan_file(entry_path)
            if record is None:
                continue

            state.records.append(record)
            state.processed += 1
            if state.on_progress and state.processed % self._progress_interval == 0:
                result = state.on_progress(ScanProgress(state.processed, entry_path.name))
                if inspect.isawaitable(result):
                    await result

    async def _scan_file(self, path: Path) -> AssetRecord | None:
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
            return None

        fingerprint = stat_fingerprint(path, st)
        tags = await self._cache.get(fingerprint)
        if tags is None:
            tags = await self._read_tags(path)
            if tags is not None:
                await self._cache.put(fingerprint, tags)
        else:
            logger.debug("Metadata cache hit: %s", path.name)

        tags = tags or TagMetadata()
        return AssetRecord(
            path=str(path),
            display_name=path.name,
            title=tags.title,
            artist=tags.artist,
            album=tags.album,
            genre=tags.genre,
            year=tags.year,
            file_size=st.st_size,
            last_modified=st.st_mtime_ns // 1_000_000,
        )

    async def _read_tags(self, path: Path) -> TagMetadata | None:
        """Read tags; None when extraction fails so the failure is not cached."""
        try:
            return await asyncio.to_thread(self._tag_reader, path)
        except Exception as e:
            # mutagen raises a wide range of container-specific errors
            logger.warning("Could not read tags from %s: %s", path.name, e)
            return None


def _list_entries(directory: Path) -> list[tuple[Path, bool]]:
    """Sorted ``(path, is_dir)`` pairs; symlinked directories are not followed."""
    with os.scandir(directory) as it:
        entries = [(Path(e.path), e.is_dir(follow_symlinks=False)) for e in it]
    return sorted(entries, key=lambda item: item[0].name)
