"""Temporary song files."""

from powerhour.core.songs.models import TempSong
from powerhour.core.songs.store import TempSongStore

__all__ = ["TempSong", "TempSongStore"]
