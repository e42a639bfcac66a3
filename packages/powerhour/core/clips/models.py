"""Clip models and the clip-capacity rule shared by mixes and playlists."""

from __future__ import annotations

import logging

from pydantic import AliasChoices, Field

from powerhour.core.models import PowerHourModel

logger = logging.getLogger(__name__)

MAX_CLIPS = 60


class ClipRef(PowerHourModel):
    """Reference to a rendered clip as stored in mixes, playlists and sidecars."""

    id: str
    name: str = ""
    start: float = Field(default=0.0, ge=0.0)
    duration: float = Field(default=0.0, ge=0.0)
    song_name: str | None = Field(
        default=None, validation_alias=AliasChoices("songName", "sourceSongName", "song_name")
    )
    clip_path: str | None = None
    artist: str | None = None
    album: str | None = None
    year: str | None = None
    genre: str | None = None


class Clip(ClipRef):
    """A rendered clip with its encoded WAV bytes (never written into JSON)."""

    audio_bytes: bytes = Field(default=b"", exclude=True, repr=False)
    sample_rate: int | None = None
    channels: int | None = None

    def to_ref(self) -> ClipRef:
        return ClipRef.model_validate(self.model_dump(exclude={"sample_rate", "channels"}))


def cap_clips(clips: list[ClipRef], owner: str, limit: int = MAX_CLIPS) -> list[ClipRef]:
    """Truncate a clip list to the capacity limit, logging what was dropped."""
    if len(clips) <= limit:
        return clips
    logger.warning("%s has %d clips; keeping the first %d", owner, len(clips), limit)
    return clips[:limit]


class ClipSequence(PowerHourModel):
    """Ordered, capacity-bounded clip list (base for Mix and Playlist)."""

    clips: list[ClipRef] = Field(default_factory=list)

    def model_post_init(self, __context: object) -> None:
        self.clips = cap_clips(self.clips, f"{type(self).__name__} {getattr(self, 'id', '')}".strip())

    @property
    def is_full(self) -> bool:
        return len(self.clips) >= MAX_CLIPS

    def add_clip(self, clip: ClipRef) -> bool:
        """Append a clip. Returns False (and leaves the list unchanged) when full."""
        if self.is_full:
            logger.warning("Cannot add clip %s: limit of %d clips reached", clip.id, MAX_CLIPS)
            return False
        self.clips.append(clip)
        return True

    def replace_clip_ids(self, mapping: dict[str, str]) -> None:
        """Rewrite clip ids after an import renamed colliding clips."""
        if not mapping:
            return
        self.clips = [
            clip.model_copy(update={"id": mapping[clip.id]}) if clip.id in mapping else clip
            for clip in self.clips
        ]
