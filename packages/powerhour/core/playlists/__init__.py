"""Playlists."""

from powerhour.core.playlists.models import ExportInfo, ImportInfo, Playlist
from powerhour.core.playlists.store import PlaylistStore

__all__ = ["ExportInfo", "ImportInfo", "Playlist", "PlaylistStore"]
