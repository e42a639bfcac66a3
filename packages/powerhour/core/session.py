"""Power Hour session - composition root for the media core.

The session owns one instance of every store and engine, built lazily from
``AppConfig``, and exposes the core operations as async methods for the UI
layer. Blocking work (decoding, encoding, file copies, zip I/O) runs in
worker threads so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from powerhour.core.archive import (
    ArchiveExportResult,
    PlaylistArchiver,
    PlaylistImportResult,
    ProjectArchiver,
    ProjectImportResult,
)
from powerhour.core.audio.decoder import AudioDecoder, LibrosaDecoder
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.audio.tags import TagMetadata, extract_tags
from powerhour.core.caching import FSMetadataCache, MemoryMetadataCache, MetadataCache
from powerhour.core.clips import MAX_CLIPS, Clip, ClipExtractor, ClipRef, ClipStore
from powerhour.core.config.models import AppConfig
from powerhour.core.errors import NotFoundError, PowerHourError, ScanCancelledError
from powerhour.core.io import FileSystem, RealFileSystem, absolute_path
from powerhour.core.library import (
    AssetRecord,
    CacheStats,
    LibraryCacheRecord,
    LibraryScanner,
    LibraryStore,
    ScanToken,
    library_id,
)
from powerhour.core.library.scanner import ProgressCallback
from powerhour.core.mixes import (
    FFmpegExporter,
    Mix,
    MixCompositor,
    MixRef,
    MixRenderResult,
    MixStore,
    PlaylistOrigin,
    SourceProjectData,
)
from powerhour.core.playlists import Playlist, PlaylistStore
from powerhour.core.songs import TempSongStore
from powerhour.core.storage import StorageLayout

logger = logging.getLogger(__name__)


class ScanResult(BaseModel):
    """Outcome of ``scan_library``. A cancelled scan carries no songs."""

    path: str
    songs: list[AssetRecord] = Field(default_factory=list)
    cancelled: bool = False
    from_cache: bool = False
    library: LibraryCacheRecord | None = None


@dataclass(eq=False)
class ScanHandle:
    """A running scan; cancel it through ``cancel()`` or the session."""

    path: str
    token: ScanToken
    task: asyncio.Task[ScanResult]

    def cancel(self) -> None:
        self.token.cancel()

    async def result(self) -> ScanResult:
        return await self.task


class PowerHourSession:
    """Composition root for the Power Hour media core.

    Collaborators can be injected for tests; anything not injected is built
    from ``app_config`` on first use.
    """

    def __init__(
        self,
        app_config: AppConfig | Path | str | None = None,
        *,
        fs: FileSystem | None = None,
        decoder: AudioDecoder | None = None,
        metadata_cache: MetadataCache | None = None,
        tag_reader: Callable[[Path], TagMetadata] | None = None,
        ffmpeg_runner: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            app_config: AppConfig instance, path to a config file, or None for defaults
            fs: Filesystem for the library store and durable metadata cache
            decoder: Audio decoder (defaults to librosa)
            metadata_cache: Tag cache shared by every scan
            tag_reader: Tag extraction function used on cache misses
            ffmpeg_runner: ``subprocess.run`` replacement for compressed export
        """
        self.app_config = self._resolve_config(app_config)
        self.layout = StorageLayout.from_config(self.app_config).ensure()
        self.fs: FileSystem = fs or RealFileSystem()
        self.decoder: AudioDecoder = decoder or LibrosaDecoder()
        self._injected_cache = metadata_cache
        self._tag_reader = tag_reader or extract_tags
        self._ffmpeg_runner = ffmpeg_runner

        self._active_scans: set[ScanHandle] = set()
        self._library_locks: dict[str, asyncio.Lock] = {}
        self._library_lock_users: Counter[str] = Counter()

        logger.debug("Session initialized: data_dir=%s", self.layout.root)

    @staticmethod
    def _resolve_config(value: AppConfig | Path | str | None) -> AppConfig:
        if value is None:
            return AppConfig.load_or_default()
        if isinstance(value, (Path, str)):
            return AppConfig.load_or_default(Path(value))
        if isinstance(value, AppConfig):
            return value
        raise TypeError(f"Expected AppConfig, Path, str, or None; got {type(value).__name__}")

    @classmethod
    def from_directory(cls, data_dir: Path | str, **kwargs: Any) -> PowerHourSession:
        """Session whose stores all live under ``data_dir``.

        A ``powerhour.yaml`` inside the directory is used when present.
        """
        data_dir = Path(data_dir)
        config = AppConfig.load_or_default(data_dir / "powerhour.yaml").with_data_dir(data_dir)
        return cls(config, **kwargs)

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    @property
    def metadata_cache(self) -> MetadataCache:
        if not hasattr(self, "_metadata_cache"):
            scan_cfg = self.app_config.scan
            cache: MetadataCache
            if self._injected_cache is not None:
                cache = self._injected_cache
            elif scan_cfg.persistent_metadata_cache:
                cache = FSMetadataCache(
                    self.fs,
                    absolute_path(self.layout.library_cache / "metadata"),
                    ttl_seconds=scan_cfg.metadata_ttl_seconds,
                )
            else:
                cache = MemoryMetadataCache(ttl_seconds=scan_cfg.metadata_ttl_seconds)
            self._metadata_cache = cache
        return self._metadata_cache

    @property
    def library_store(self) -> LibraryStore:
        if not hasattr(self, "_library_store"):
            self._library_store = LibraryStore(
                self.fs, absolute_path(self.layout.library_cache), defaults=self.app_config.library
            )
        return self._library_store

    @property
    def scanner(self) -> LibraryScanner:
        if not hasattr(self, "_scanner"):
            self._scanner = LibraryScanner(
                self.metadata_cache,
                extensions=self.app_config.scan.extensions,
                progress_interval=self.app_config.scan.progress_interval,
                tag_reader=self._tag_reader,
            )
        return self._scanner

    @property
    def clip_store(self) -> ClipStore:
        if not hasattr(self, "_clip_store"):
            self._clip_store = ClipStore(self.layout.clips, self.layout.temp_clips)
        return self._clip_store

    @property
    def extractor(self) -> ClipExtractor:
        if not hasattr(self, "_extractor"):
            audio = self.app_config.audio
            self._extractor = ClipExtractor(
                self.decoder,
                unsupported_extensions=audio.unsupported_extraction_extensions,
                id_factory=self.clip_store.new_clip_id,
                wild_card_seconds=audio.wild_card_clip_seconds,
            )
        return self._extractor

    @property
    def compositor(self) -> MixCompositor:
        if not hasattr(self, "_compositor"):
            self._compositor = MixCompositor(sample_rate=self.app_config.audio.sample_rate)
        return self._compositor

    @property
    def ffmpeg_exporter(self) -> FFmpegExporter:
        if not hasattr(self, "_ffmpeg_exporter"):
            export = self.app_config.export
            kwargs: dict[str, Any] = {}
            if self._ffmpeg_runner is not None:
                kwargs["runner"] = self._ffmpeg_runner
            self._ffmpeg_exporter = FFmpegExporter(
                export.ffmpeg_path, sample_rate=export.sample_rate, mp3_bitrate=export.mp3_bitrate, **kwargs
            )
        return self._ffmpeg_exporter

    @property
    def mix_store(self) -> MixStore:
        if not hasattr(self, "_mix_store"):
            self._mix_store = MixStore(self.layout.mixes, self.layout.backups)
        return self._mix_store

    @property
    def playlist_store(self) -> PlaylistStore:
        if not hasattr(self, "_playlist_store"):
            self._playlist_store = PlaylistStore(self.layout.playlists)
        return self._playlist_store

    @property
    def temp_song_store(self) -> TempSongStore:
        if not hasattr(self, "_temp_song_store"):
            self._temp_song_store = TempSongStore(self.layout.temp_songs)
        return self._temp_song_store

    @property
    def project_archiver(self) -> ProjectArchiver:
        if not hasattr(self, "_project_archiver"):
            self._project_archiver = ProjectArchiver(self.mix_store, self.clip_store, self.layout.projects)
        return self._project_archiver

    @property
    def playlist_archiver(self) -> PlaylistArchiver:
        if not hasattr(self, "_playlist_archiver"):
            self._playlist_archiver = PlaylistArchiver(
                self.playlist_store, self.clip_store, self.layout.projects
            )
        return self._playlist_archiver

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _library_lock(self, path: str | Path) -> AsyncIterator[None]:
        """Hold the lock for one library folder; the entry is dropped once no task uses it."""
        key = library_id(path)
        lock = self._library_locks.setdefault(key, asyncio.Lock())
        self._library_lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._library_lock_users[key] -= 1
            if not self._library_lock_users[key]:
                del self._library_lock_users[key]
                del self._library_locks[key]

    def start_scan(self, path: str | Path, on_progress: ProgressCallback | None = None) -> ScanHandle:
        """Start scanning ``path`` in the background and return its handle."""
        token = ScanToken()
        task = asyncio.create_task(self._scan_and_store(str(path), on_progress, token))
        handle = ScanHandle(path=str(path), token=token, task=task)
        self._active_scans.add(handle)
        task.add_done_callback(lambda _t: self._active_scans.discard(handle))
        return handle

    async def _scan_and_store(
        self, path: str, on_progress: ProgressCallback | None, token: ScanToken
    ) -> ScanResult:
        async with self._library_lock(path):
            try:
                songs = await self.scanner.scan(path, on_progress=on_progress, token=token)
            except ScanCancelledError:
                logger.info("Scan of %s cancelled", path)
                return ScanResult(path=path, cancelled=True)
            record = await self.library_store.save_library(path, songs, make_current=True)
        return ScanResult(path=path, songs=songs, library=record)

    async def scan_library(
        self,
        path: str | Path,
        on_progress: ProgressCallback | None = None,
        force: bool = False,
    ) -> ScanResult:
        """Scan a library folder, reusing a fresh cached scan unless ``force``.

        Raises:
            NotFoundError: If the folder does not exist
            StorageFullError: If the scan could not be persisted
        """
        store = self.library_store
        settings = await store.get_settings()
        if not force and settings.auto_refresh_enabled and not await store.needs_refresh(path):
            songs = await store.load_library(path, make_current=True) or []
            logger.info("Using cached library for %s (%d songs)", path, len(songs))
            return ScanResult(
                path=str(path), songs=songs, from_cache=True, library=await store.get_library(path)
            )
        return await self.start_scan(path, on_progress).result()

    def cancel_scan(self, handle: ScanHandle | None = None) -> int:
        """Cancel one scan, or every active scan when no handle is given."""
        targets = [handle] if handle is not None else list(self._active_scans)
        for target in targets:
            target.cancel()
        return len(targets)

    async def remove_library(self, path: str | Path) -> bool:
        async with self._library_lock(path):
            return await self.library_store.remove_library(path)

    async def list_libraries(self) -> list[LibraryCacheRecord]:
        return await self.library_store.get_all_libraries()

    async def get_cache_stats(self) -> CacheStats:
        return await self.library_store.get_cache_stats()

    # ------------------------------------------------------------------
    # Clips
    # ------------------------------------------------------------------

    @staticmethod
    def _as_asset(asset: AssetRecord | str | Path) -> AssetRecord:
        if isinstance(asset, AssetRecord):
            return asset
        return AssetRecord(path=str(asset), display_name=Path(asset).name)

    async def extract_clip(self, asset: AssetRecord | str | Path, start: float, duration: float) -> Clip:
        """Extract a clip and persist it to its permanent folder.

        Raises:
            UnsupportedFormatError: If the source cannot be decoded
            InvalidRangeError: If the window is outside the source
        """
        clip = await asyncio.to_thread(self.extractor.extract, self._as_asset(asset), start, duration)
        stored = await asyncio.to_thread(self.clip_store.save_clip, clip)
        return clip.model_copy(update={"clip_path": stored.clip_path})

    async def wild_card(self, assets: Sequence[AssetRecord], max_clips: int = MAX_CLIPS) -> list[Clip]:
        """Random one-minute clips from many songs; failures are skipped."""
        clips = await asyncio.to_thread(self.extractor.wild_card, list(assets), max_clips)
        saved: list[Clip] = []
        for clip in clips:
            stored = await asyncio.to_thread(self.clip_store.save_clip, clip)
            saved.append(clip.model_copy(update={"clip_path": stored.clip_path}))
        return saved

    async def list_clips(self) -> list[ClipRef]:
        return await asyncio.to_thread(self.clip_store.list_clips)

    async def get_clip(self, clip_id: str) -> Clip:
        return await asyncio.to_thread(self.clip_store.get_clip, clip_id)

    async def delete_clip(self, clip_id: str) -> bool:
        return await asyncio.to_thread(self.clip_store.delete_clip, clip_id)

    async def save_interstitial_sound(self, audio: bytes) -> Path:
        return await asyncio.to_thread(self.clip_store.save_interstitial_sound, audio)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _render_refs(self, refs: Sequence[ClipRef], interstitial: Path | None) -> MixRenderResult:
        buffers: list[AudioBuffer] = []
        valid: list[ClipRef] = []
        for ref in refs:
            path = self.clip_store.resolve_clip_file(ref)
            if path is None:
                logger.warning("Skipping clip %s (%s): file not found", ref.id, ref.name)
                continue
            try:
                buffers.append(self.decoder.decode(path))
            except PowerHourError as e:
                logger.warning("Skipping clip %s: %s", ref.id, e.message)
                continue
            valid.append(ref.model_copy(update={"clip_path": str(path)}))

        if not valid:
            raise NotFoundError("No valid clips found to create a mix")

        interstitial_buffer = None
        if interstitial is not None:
            try:
                interstitial_buffer = self.decoder.decode(Path(interstitial))
            except PowerHourError as e:
                logger.warning("Composing without interstitial sound: %s", e.message)

        return self.compositor.render(buffers, interstitial_buffer, valid)

    async def compose_mix(self, clip_ids: Sequence[str], interstitial: Path | str | None = None) -> MixRenderResult:
        """Render stored clips (by id) into one WAV with the interstitial between them.

        Unknown ids are skipped.

        Raises:
            NotFoundError: If none of the ids resolve to a clip
        """

        def refs() -> list[ClipRef]:
            return [self.clip_store.read_sidecar(cid) or ClipRef(id=cid, name=cid) for cid in clip_ids]

        resolved = await asyncio.to_thread(refs)
        return await asyncio.to_thread(
            self._render_refs, resolved, Path(interstitial) if interstitial else None
        )

    async def create_mix_from_playlist(self, playlist_id: str) -> Mix:
        """Render a playlist and save it as a new mix named ``"{playlist} Mix"``."""
        playlist = await self.get_playlist(playlist_id)
        interstitial = Path(playlist.interstitial_path) if playlist.interstitial_path else None
        result = await asyncio.to_thread(self._render_refs, playlist.clips, interstitial)

        mix = Mix(
            id=self.mix_store.new_mix_id(),
            name=f"{playlist.name} Mix",
            clips=result.clips,
            has_interstitial=interstitial is not None,
            duration=result.duration,
            song_list=[clip.song_name or clip.name for clip in result.clips],
            from_playlist=PlaylistOrigin(id=playlist.id, name=playlist.name),
            source_project_data=SourceProjectData(
                interstitial_path=str(interstitial) if interstitial else None, clips=result.clips
            ),
        )
        return await self.save_mix(mix, result.audio_bytes)

    async def export_playlist_as_audio(self, playlist_id: str, output: Path | str) -> Path:
        """Concatenate a playlist's clips via ffmpeg into a WAV or MP3 (by suffix).

        Raises:
            NotFoundError: If the playlist, its interstitial sound, or every clip is missing
            ExportError: If ffmpeg fails
        """
        playlist = await self.get_playlist(playlist_id)
        if not playlist.interstitial_path or not Path(playlist.interstitial_path).is_file():
            raise NotFoundError("The playlist needs an interstitial sound before it can be exported as audio")

        paths = []
        for ref in playlist.clips:
            path = self.clip_store.resolve_clip_file(ref)
            if path is None:
                logger.warning("Skipping clip %s (%s): file not found", ref.id, ref.name)
                continue
            paths.append(path)

        return await asyncio.to_thread(
            self.ffmpeg_exporter.export, paths, Path(playlist.interstitial_path), Path(output)
        )

    # ------------------------------------------------------------------
    # Mixes
    # ------------------------------------------------------------------

    async def save_mix(self, mix: Mix, audio: bytes) -> Mix:
        if not mix.id:
            mix = mix.model_copy(update={"id": self.mix_store.new_mix_id()})
        return await asyncio.to_thread(self.mix_store.save_mix, mix, audio)

    async def list_mixes(self) -> list[Mix]:
        return await asyncio.to_thread(self.mix_store.list_mixes)

    async def get_mix(self, ref: MixRef | Mix | str) -> Mix:
        return await asyncio.to_thread(self.mix_store.get_mix, ref)

    async def delete_mix(self, ref: MixRef | Mix | str) -> bool:
        return await asyncio.to_thread(self.mix_store.delete_mix, ref)

    async def rename_mix(self, ref: MixRef | Mix | str, new_name: str) -> Mix:
        return await asyncio.to_thread(self.mix_store.rename_mix, ref, new_name)

    async def update_mix_metadata(self, mix: Mix) -> Mix:
        return await asyncio.to_thread(self.mix_store.update_mix_metadata, mix)

    async def replace_mix(self, old: MixRef | Mix | str, mix: Mix, audio: bytes) -> Mix:
        return await asyncio.to_thread(self.mix_store.replace_mix, old, mix, audio)

    # ------------------------------------------------------------------
    # Playlists
    # ------------------------------------------------------------------

    async def save_playlist(self, playlist: Playlist) -> Playlist:
        return await asyncio.to_thread(self.playlist_store.save_playlist, playlist)

    async def get_playlist(self, playlist_id: str) -> Playlist:
        return await asyncio.to_thread(self.playlist_store.get_playlist, playlist_id)

    async def list_playlists(self) -> list[Playlist]:
        return await asyncio.to_thread(self.playlist_store.list_playlists)

    async def delete_playlist(self, playlist_id: str) -> bool:
        return await asyncio.to_thread(self.playlist_store.delete_playlist, playlist_id)

    # ------------------------------------------------------------------
    # Archives
    # ------------------------------------------------------------------

    async def export_project_archive(
        self, ref: MixRef | Mix | str, destination: Path | str | None = None
    ) -> ArchiveExportResult:
        dest = Path(destination) if destination else None
        return await asyncio.to_thread(self.project_archiver.export_project, ref, dest)

    async def import_project_archive(self, path: Path | str) -> ProjectImportResult:
        return await asyncio.to_thread(self.project_archiver.import_project, Path(path))

    async def export_playlist_archive(
        self, playlist_id: str, destination: Path | str | None = None
    ) -> ArchiveExportResult:
        dest = Path(destination) if destination else None
        return await asyncio.to_thread(self.playlist_archiver.export_playlist, playlist_id, dest)

    async def import_playlist_archive(self, path: Path | str) -> PlaylistImportResult:
        return await asyncio.to_thread(self.playlist_archiver.import_playlist, Path(path))

