"""Resolved locations of every local store folder."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from powerhour.core.config.models import AppConfig, StorageConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageLayout:
    """Absolute folder paths under one data directory.

    - ``mixes``: ``{id}.wav`` + ``{id}.json`` pairs
    - ``backups``: ``{mixId}/...`` original sources per mix
    - ``temp_clips``: ``{clipId}.wav`` + ``.json``
    - ``temp_songs``: ``{songId}{ext}`` + ``.json``
    - ``clips``: ``{clipId}/{clipId}.wav`` + ``.json``
    - ``playlists``: ``{playlistId}.json`` + optional ``{playlistId}_assets/``
    - ``projects``: exported project archives
    - ``library_cache``: library store document and durable metadata cache
    """

    root: Path
    mixes: Path
    backups: Path
    temp_clips: Path
    temp_songs: Path
    clips: Path
    playlists: Path
    projects: Path
    library_cache: Path

    @classmethod
    def from_root(cls, root: Path | str, names: StorageConfig | None = None) -> StorageLayout:
        names = names or StorageConfig()
        base = Path(root).expanduser().resolve()
        return cls(
            root=base,
            mixes=base / names.mixes,
            backups=base / names.backups,
            temp_clips=base / names.temp_clips,
            temp_songs=base / names.temp_songs,
            clips=base / names.clips,
            playlists=base / names.playlists,
            projects=base / names.projects,
            library_cache=base / names.library_cache,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> StorageLayout:
        return cls.from_root(config.data_dir, config.storage)

    def folders(self) -> list[Path]:
        return [
            self.mixes,
            self.backups,
            self.temp_clips,
            self.temp_songs,
            self.clips,
            self.playlists,
            self.projects,
            self.library_cache,
        ]

    def ensure(self) -> StorageLayout:
        """Create every folder that does not exist yet."""
        for folder in self.folders():
            folder.mkdir(parents=True, exist_ok=True)
        logger.debug("Storage layout ready under %s", self.root)
        return self
