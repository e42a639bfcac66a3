"""Models for scanned libraries."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field, model_validator

from powerhour.core.models import PowerHourModel

LIBRARY_SCHEMA_VERSION = 1


class AssetRecord(PowerHourModel):
    """A discovered audio file. Identity is ``path``."""

    path: str
    display_name: str = Field(validation_alias=AliasChoices("displayName", "display_name", "name"))
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    year: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    last_modified: int | None = Field(default=None, description="Modification time, epoch ms")


class LibraryCacheRecord(PowerHourModel):
    """Cached scan of one root folder.

    ``song_count`` and ``total_size`` are always recomputed from ``songs``.
    """

    id: str
    name: str
    path: str
    songs: list[AssetRecord] = Field(default_factory=list)
    last_scanned: int = Field(description="Epoch ms of the scan that produced songs")
    song_count: int = 0
    total_size: int = 0
    version: int = LIBRARY_SCHEMA_VERSION

    @model_validator(mode="after")
    def _fold_totals(self) -> LibraryCacheRecord:
        self.song_count = len(self.songs)
        self.total_size = sum(song.file_size or 0 for song in self.songs)
        return self

    def replace_songs(self, songs: list[AssetRecord], last_scanned: int) -> LibraryCacheRecord:
        return self.model_copy(update={"songs": list(songs), "last_scanned": last_scanned}).refolded()

    def refolded(self) -> LibraryCacheRecord:
        """Copy with totals recomputed (model_copy skips validators)."""
        return LibraryCacheRecord.model_validate(self.model_dump())


class LibrarySettings(PowerHourModel):
    """User-adjustable library caching behaviour."""

    auto_refresh_enabled: bool = True
    cache_expiry_days: int = Field(default=7, ge=1)
    max_cache_size: int = Field(default=100 * 1024 * 1024, gt=0)


class CacheStats(BaseModel):
    total_libraries: int
    total_songs: int
    total_size: int
    oldest_cache: int | None = None
    newest_cache: int | None = None
