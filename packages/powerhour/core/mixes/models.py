"""Mix models."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import AliasChoices, Field

from powerhour.core.clips.models import ClipRef, ClipSequence
from powerhour.core.library.models import AssetRecord
from powerhour.core.models import PowerHourModel
from powerhour.core.utils.formatting import utc_now_iso


class SourceProjectData(PowerHourModel):
    """Provenance kept with a mix so it can be re-edited later."""

    interstitial_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("interstitialPath", "drinkingSoundPath", "interstitial_path"),
    )
    songs: list[AssetRecord] = Field(default_factory=list)
    clips: list[ClipRef] = Field(default_factory=list)


class PlaylistOrigin(PowerHourModel):
    id: str
    name: str


class Mix(ClipSequence):
    """A rendered composite: one WAV plus this JSON sidecar."""

    id: str
    name: str
    created_at: str = Field(
        default_factory=utc_now_iso, validation_alias=AliasChoices("createdAt", "date", "created_at")
    )
    has_interstitial: bool = Field(
        default=False,
        validation_alias=AliasChoices("hasInterstitial", "hasDrinkingSound", "has_interstitial"),
    )
    duration: float | None = None
    source_project_data: SourceProjectData | None = None
    song_list: list[str] = Field(default_factory=list)
    from_playlist: PlaylistOrigin | None = None
    local_file_path: str | None = Field(default=None, exclude=True)


@dataclass(frozen=True)
class MixRef:
    """Identifies a mix by id, legacy name, or both."""

    id: str | None = None
    name: str | None = None

    @classmethod
    def of(cls, value: MixRef | Mix | str) -> MixRef:
        """A bare string is matched against both id and name."""
        if isinstance(value, MixRef):
            return value
        if isinstance(value, Mix):
            return cls(id=value.id, name=value.name)
        return cls(id=value, name=value)

    def __str__(self) -> str:
        return self.id or self.name or "<unnamed mix>"
