"""Project and playlist archive export/import."""

from powerhour.core.archive.models import (
    ArchiveExportResult,
    PlaylistImportResult,
    ProjectImportResult,
    ProjectManifest,
)
from powerhour.core.archive.playlist import PLAYLIST_EXTENSION, PlaylistArchiver
from powerhour.core.archive.project import PROJECT_EXTENSION, ProjectArchiver

__all__ = [
    "PLAYLIST_EXTENSION",
    "PROJECT_EXTENSION",
    "ArchiveExportResult",
    "PlaylistArchiver",
    "PlaylistImportResult",
    "ProjectArchiver",
    "ProjectImportResult",
    "ProjectManifest",
]
