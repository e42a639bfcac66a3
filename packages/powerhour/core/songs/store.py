"""Temp-song storage: ``{songId}{ext}`` plus ``{songId}.json``."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.errors import NotFoundError
from powerhour.core.io.utils import sanitize_path_component
from powerhour.core.songs.models import TempSong
from powerhour.core.utils.formatting import random_base36
from powerhour.core.utils.json import read_json, write_json

logger = logging.getLogger(__name__)


class TempSongStore:
    def __init__(self, temp_songs_dir: Path) -> None:
        self.temp_songs_dir = Path(temp_songs_dir)

    def _paths(self, song: TempSong) -> tuple[Path, Path]:
        key = sanitize_path_component(song.id)
        ext = song.extension if song.extension.startswith(".") else f".{song.extension}"
        return self.temp_songs_dir / f"{key}{ext}", self.temp_songs_dir / f"{key}.json"

    def save_temp_song(self, song: TempSong, audio: bytes) -> TempSong:
        if not song.id:
            song = song.model_copy(update={"id": f"song_{random_base36(10)}"})
        audio_path, json_path = self._paths(song)
        self.temp_songs_dir.mkdir(parents=True, exist_ok=True)
        audio_path.write_bytes(audio)
        song = song.model_copy(update={"file_path": str(audio_path)})
        write_json(json_path, song.to_json_dict())
        return song

    def get_temp_song(self, song_id: str) -> TempSong:
        json_path = self.temp_songs_dir / f"{sanitize_path_component(song_id)}.json"
        if not json_path.is_file():
            raise NotFoundError(f"Temp song not found: {song_id}")
        return TempSong.model_validate(read_json(json_path))

    def list_temp_songs(self) -> list[TempSong]:
        if not self.temp_songs_dir.is_dir():
            return []
        songs: list[TempSong] = []
        for json_path in sorted(self.temp_songs_dir.glob("*.json")):
            try:
                songs.append(TempSong.model_validate(read_json(json_path)))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("Skipping unreadable temp song %s: %s", json_path.name, e)
        return songs

    def delete_temp_song(self, song_id: str) -> bool:
        try:
            song = self.get_temp_song(song_id)
        except NotFoundError:
            return False
        for path in self._paths(song):
            if path.is_file():
                path.unlink()
        return True

    def clear_temp_songs(self) -> int:
        count = 0
        for song in self.list_temp_songs():
            if self.delete_temp_song(song.id):
                count += 1
        return count
