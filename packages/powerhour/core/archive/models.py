"""Archive manifests and operation results."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from powerhour.core.mixes.models import Mix
from powerhour.core.models import PowerHourModel
from powerhour.core.playlists.models import Playlist

PROJECT_TYPE = "power-hour-project"
ARCHIVE_VERSION = "1.0"


class ProjectManifest(PowerHourModel):
    """``manifest.json`` of a project archive."""

    type: str
    version: str = ARCHIVE_VERSION
    created: str
    mix_id: str
    mix_name: str
    has_original_files: bool = False
    clip_count: int = Field(default=0, ge=0)
    has_drinking_sound: bool = False


class ArchiveExportResult(BaseModel):
    path: Path
    message: str
    total_clips: int = 0
    valid_clips: int = 0


class ProjectImportResult(BaseModel):
    mix: Mix
    message: str
    renamed_clips: dict[str, str] = Field(default_factory=dict)


class PlaylistImportResult(BaseModel):
    playlist: Playlist
    message: str
    renamed_clips: dict[str, str] = Field(default_factory=dict)
