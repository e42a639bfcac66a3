"""Configuration models for Power Hour."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

SUPPORTED_AUDIO_EXTENSIONS = (".mp3", ".wav", ".ogg", ".m4a", ".flac", ".aac")


class StorageConfig(BaseModel):
    """Folder names under the data directory."""

    model_config = ConfigDict(extra="ignore")

    mixes: str = "mixes"
    backups: str = "backups"
    temp_clips: str = "temp_clips"
    temp_songs: str = "temp_songs"
    clips: str = "clips"
    playlists: str = "playlists"
    projects: str = "projects"
    library_cache: str = "library_cache"


class LibraryDefaults(BaseModel):
    """Initial library settings used until the user changes them."""

    auto_refresh_enabled: bool = True
    cache_expiry_days: int = Field(default=7, ge=1, le=365, description="Days before a scan is stale")
    max_cache_size: int = Field(
        default=100 * 1024 * 1024, gt=0, description="Advisory cap on cached library bytes"
    )
    eviction_fraction: float = Field(
        default=0.25,
        gt=0.0,
        le=1.0,
        description="Share of records (oldest scans first) dropped when storage is full",
    )


class ScanConfig(BaseModel):
    """Library scanner configuration."""

    extensions: list[str] = Field(default_factory=lambda: list(SUPPORTED_AUDIO_EXTENSIONS))
    progress_interval: int = Field(default=10, ge=1, description="Files between progress reports")
    metadata_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)
    persistent_metadata_cache: bool = Field(
        default=False, description="Keep extracted tags on disk across sessions"
    )


class AudioConfig(BaseModel):
    """Rendering and extraction configuration."""

    sample_rate: int = Field(default=44100, ge=8000, le=192000, description="Render context rate")
    unsupported_extraction_extensions: list[str] = Field(default_factory=lambda: [".m4a"])
    max_clips: int = Field(default=60, ge=1, description="Clip capacity of a mix or playlist")
    wild_card_clip_seconds: float = Field(default=60.0, gt=0)


class ExportConfig(BaseModel):
    """Compressed audio export through an external ffmpeg process."""

    ffmpeg_path: str = "ffmpeg"
    mp3_bitrate: str = Field(default="192k", pattern=r"^\d+k$")
    sample_rate: int = 44100


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False
    filename: str | None = None


class AppConfig(BaseModel):
    """Application-level configuration."""

    model_config = ConfigDict(extra="ignore")

    data_dir: str = "~/.powerhour"
    storage: StorageConfig = StorageConfig()
    library: LibraryDefaults = LibraryDefaults()
    scan: ScanConfig = ScanConfig()
    audio: AudioConfig = AudioConfig()
    export: ExportConfig = ExportConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("powerhour.yaml")

    @classmethod
    def load_or_default(cls, path: Path | str | None = None) -> Self:
        """Load config from path, falling back to defaults when the file is absent."""
        from powerhour.core.config.loader import load_app_config

        return load_app_config(path)  # type: ignore[return-value]

    def with_data_dir(self, data_dir: Path | str) -> AppConfig:
        return self.model_copy(update={"data_dir": str(data_dir)})
