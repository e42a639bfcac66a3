"""Playlist models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from powerhour.core.clips.models import ClipSequence
from powerhour.core.models import PowerHourModel


class ExportInfo(PowerHourModel):
    export_date: str
    version: str = "1.0"
    total_clips: int
    valid_clips: int


class ImportInfo(PowerHourModel):
    import_date: str
    original_name: str | None = None
    original_id: str | None = None
    valid_clips: int
    total_clips_in_json: int
    source_file: str


class Playlist(ClipSequence):
    """Reusable, unrendered ordered list of clip references."""

    id: str = ""
    name: str
    date: str | None = None
    interstitial_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("interstitialPath", "drinkingSoundPath", "interstitial_path"),
    )
    image_path: str | None = None
    export_info: ExportInfo | None = None
    import_info: ImportInfo | None = None
