"""Playlist storage: ``{id}.json`` plus an optional ``{id}_assets/`` folder."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.errors import NotFoundError
from powerhour.core.io.utils import sanitize_path_component
from powerhour.core.playlists.models import Playlist
from powerhour.core.utils.formatting import utc_now_iso
from powerhour.core.utils.json import read_json, write_json

logger = logging.getLogger(__name__)


class PlaylistStore:
    def __init__(self, playlists_dir: Path) -> None:
        self.playlists_dir = Path(playlists_dir)

    def json_path(self, playlist_id: str) -> Path:
        return self.playlists_dir / f"{sanitize_path_component(playlist_id)}.json"

    def assets_dir(self, playlist_id: str) -> Path:
        return self.playlists_dir / f"{sanitize_path_component(playlist_id)}_assets"

    def exists(self, playlist_id: str) -> bool:
        return self.json_path(playlist_id).is_file()

    def new_playlist_id(self) -> str:
        """``pl_{ms}``, bumped until unused."""
        stamp = int(time.time() * 1000)
        while self.exists(f"pl_{stamp}"):
            stamp += 1
        return f"pl_{stamp}"

    def save_playlist(self, playlist: Playlist) -> Playlist:
        """Persist a playlist, assigning an id and date when missing."""
        updates: dict[str, str] = {}
        if not playlist.id:
            updates["id"] = self.new_playlist_id()
        if not playlist.date:
            updates["date"] = utc_now_iso()
        if updates:
            playlist = playlist.model_copy(update=updates)

        write_json(self.json_path(playlist.id), playlist.to_json_dict())
        logger.info("Saved playlist %s (%r, %d clips)", playlist.id, playlist.name, len(playlist.clips))
        return playlist

    def get_playlist(self, playlist_id: str) -> Playlist:
        """
        Raises:
            NotFoundError: If the playlist does not exist or cannot be parsed
        """
        path = self.json_path(playlist_id)
        if not path.is_file():
            raise NotFoundError(f"Playlist not found: {playlist_id}")
        try:
            return Playlist.model_validate(read_json(path))
        except (ValueError, ValidationError) as e:
            raise NotFoundError(f"Playlist {playlist_id} is unreadable: {e}") from e

    def list_playlists(self) -> list[Playlist]:
        """All readable playlists, newest first."""
        if not self.playlists_dir.is_dir():
            return []
        playlists: list[Playlist] = []
        for path in self.playlists_dir.glob("*.json"):
            try:
                playlists.append(Playlist.model_validate(read_json(path)))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("Skipping unreadable playlist %s: %s", path.name, e)
        return sorted(playlists, key=lambda p: p.date or "", reverse=True)

    def delete_playlist(self, playlist_id: str) -> bool:
        removed = False
        path = self.json_path(playlist_id)
        if path.is_file():
            path.unlink()
            removed = True
        assets = self.assets_dir(playlist_id)
        if assets.is_dir():
            shutil.rmtree(assets)
            removed = True
        return removed
