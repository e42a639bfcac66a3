"""Tests for the temp-song store."""

from __future__ import annotations

from pathlib import Path

import pytest

from powerhour.core.errors import NotFoundError
from powerhour.core.songs import TempSong, TempSongStore


@pytest.fixture
def store(tmp_path: Path) -> TempSongStore:
    return TempSongStore(tmp_path / "temp_songs")


class TestTempSongStore:
    """Tests for TempSongStore."""

    def test_save_and_get(self, store: TempSongStore):
        """Songs are stored as {id}{ext} plus a sidecar."""
        saved = store.save_temp_song(TempSong(id="s1", name="Song", extension="mp3", artist="A"), b"ID3")

        assert Path(saved.file_path) == store.temp_songs_dir / "s1.mp3"
        assert Path(saved.file_path).read_bytes() == b"ID3"
        assert store.get_temp_song("s1").artist == "A"

    def test_id_assigned(self, store: TempSongStore):
        """Songs without an id get one."""
        saved = store.save_temp_song(TempSong(id="", name="Song"), b"ID3")

        assert saved.id.startswith("song_")

    def test_get_missing(self, store: TempSongStore):
        """Unknown songs raise NotFoundError."""
        with pytest.raises(NotFoundError):
            store.get_temp_song("nope")

    def test_delete_and_clear(self, store: TempSongStore):
        """Deleting removes both files; clearing removes every song."""
        store.save_temp_song(TempSong(id="s1", name="One"), b"1")
        store.save_temp_song(TempSong(id="s2", name="Two"), b"2")

        assert store.delete_temp_song("s1")
        assert not store.delete_temp_song("s1")
        assert [s.id for s in store.list_temp_songs()] == ["s2"]

        assert store.clear_temp_songs() == 1
        assert list(store.temp_songs_dir.iterdir()) == []
