"""Multi-clip playlist archives (``.phpl``).

Layout::

    playlist.json            includes exportInfo
    clips/{clipId}.wav
    clips/{clipId}.json
    {interstitial filename}  optional
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.archive.models import ArchiveExportResult, PlaylistImportResult
from powerhour.core.archive.zip_utils import claim_clip_id, require_archive, safe_extract, zip_directory
from powerhour.core.clips.models import ClipRef
from powerhour.core.clips.store import ClipStore
from powerhour.core.errors import InvalidArchiveError
from powerhour.core.io.utils import is_safe_path_component, sanitize_path_component
from powerhour.core.playlists.models import ExportInfo, ImportInfo, Playlist
from powerhour.core.playlists.store import PlaylistStore
from powerhour.core.utils.formatting import safe_file_stem, utc_now_iso
from powerhour.core.utils.json import read_json, try_read_json, write_json

logger = logging.getLogger(__name__)

PLAYLIST_EXTENSION = ".phpl"


class PlaylistArchiver:
    """
    Exports playlists with their clip audio, and imports them under a new id.

    Args:
        playlists: Local playlist store
        clips: Local clip store
        exports_dir: Default destination for exported archives
    """

    def __init__(self, playlists: PlaylistStore, clips: ClipStore, exports_dir: Path) -> None:
        self.playlists = playlists
        self.clips = clips
        self.exports_dir = Path(exports_dir)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_playlist(self, playlist_id: str, destination: Path | None = None) -> ArchiveExportResult:
        """Package a playlist. Unresolvable clips stay listed with ``clipPath`` null.

        Raises:
            NotFoundError: If the playlist does not exist
        """
        playlist = self.playlists.get_playlist(playlist_id)
        destination = Path(destination) if destination else self.exports_dir / f"{safe_file_stem(playlist.name)}{PLAYLIST_EXTENSION}"

        with tempfile.TemporaryDirectory(prefix="ph-playlist-export-") as tmp:
            work = Path(tmp)
            clips_dir = work / "clips"
            clips_dir.mkdir()

            exported: list[ClipRef] = []
            valid = 0
            for ref in playlist.clips:
                source = self.clips.resolve_clip_file(ref)
                if source is None:
                    logger.warning("Clip %s (%s) not found, exporting it as invalid", ref.id, ref.name)
                    exported.append(ref.model_copy(update={"clip_path": None}))
                    continue

                key = sanitize_path_component(ref.id)
                shutil.copyfile(source, clips_dir / f"{key}.wav")
                sidecar = self._sidecar_for(source, ref).model_copy(update={"clip_path": f"clips/{key}.wav"})
                write_json(clips_dir / f"{key}.json", sidecar.to_json_dict())
                exported.append(ref.model_copy(update={"clip_path": f"clips/{key}.wav"}))
                valid += 1

            interstitial = self._copy_interstitial(playlist, work)
            archived = playlist.model_copy(
                update={
                    "clips": exported,
                    "interstitial_path": interstitial,
                    "import_info": None,
                    "export_info": ExportInfo(
                        export_date=utc_now_iso(), total_clips=len(playlist.clips), valid_clips=valid
                    ),
                }
            )
            write_json(work / "playlist.json", archived.to_json_dict())
            zip_directory(work, destination)

        total = len(playlist.clips)
        message = f"Exported playlist '{playlist.name}' with {valid} clips"
        if valid < total:
            message += f" ({total - valid} of {total} clips could not be found)"
        logger.info(message)
        return ArchiveExportResult(path=destination, message=message, total_clips=total, valid_clips=valid)

    @staticmethod
    def _sidecar_for(source: Path, ref: ClipRef) -> ClipRef:
        """The clip's own sidecar if present and valid, else one rebuilt from the reference."""
        data = try_read_json(source.with_suffix(".json"))
        if data is not None:
            try:
                return ClipRef.model_validate(data).model_copy(update={"id": ref.id})
            except ValidationError as e:
                logger.warning("Rebuilding invalid sidecar for clip %s: %s", ref.id, e)
        return ClipRef(
            id=ref.id,
            name=ref.name,
            start=ref.start,
            duration=ref.duration,
            song_name=ref.song_name,
        )

    @staticmethod
    def _copy_interstitial(playlist: Playlist, work: Path) -> str | None:
        if not playlist.interstitial_path:
            return None
        source = Path(playlist.interstitial_path)
        if not source.is_file():
            logger.warning("Interstitial sound not found, exporting without it: %s", source)
            return None
        shutil.copyfile(source, work / source.name)
        return source.name

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    @staticmethod
    def _read_playlist(work: Path) -> Playlist:
        path = work / "playlist.json"
        if not path.is_file():
            raise InvalidArchiveError("Invalid playlist archive: playlist.json is missing")
        try:
            return Playlist.model_validate(read_json(path))
        except (ValueError, ValidationError) as e:
            raise InvalidArchiveError(f"Invalid playlist archive: unreadable playlist.json ({e})") from e

    @staticmethod
    def _archived_clip(work: Path, ref: ClipRef) -> Path | None:
        candidates = [work / "clips" / f"{ref.id}.wav"]
        if ref.clip_path:
            candidates += [work / ref.clip_path, work / "clips" / Path(ref.clip_path).name]
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved.is_relative_to(work.resolve()) and resolved.is_file():
                return resolved
        return None

    def import_playlist(self, archive_path: Path) -> PlaylistImportResult:
        """Import a playlist archive under a fresh playlist id.

        Raises:
            NotFoundError: If the archive file does not exist
            InvalidArchiveError: If it is not a zip or lacks a valid playlist.json
        """
        archive_path = require_archive(archive_path)

        with tempfile.TemporaryDirectory(prefix="ph-playlist-import-") as tmp:
            work = Path(tmp)
            safe_extract(archive_path, work)
            source = self._read_playlist(work)

            new_id = self.playlists.new_playlist_id()
            written: list[Path] = []
            try:
                playlist, renamed = self._install(work, source, new_id, archive_path, written)
            except Exception:
                for path in written:
                    if path.is_dir():
                        shutil.rmtree(path, ignore_errors=True)
                    elif path.is_file():
                        path.unlink()
                self.playlists.delete_playlist(new_id)
                raise

        info = playlist.import_info
        message = f"Imported playlist '{playlist.name}' with {info.valid_clips} of {info.total_clips_in_json} clips"
        logger.info(message)
        return PlaylistImportResult(playlist=playlist, message=message, renamed_clips=renamed)

    def _install(
        self, work: Path, source: Playlist, new_id: str, archive_path: Path, written: list[Path]
    ) -> tuple[Playlist, dict[str, str]]:
        renamed: dict[str, str] = {}
        clips: list[ClipRef] = []
        valid = 0

        for ref in source.clips:
            if not is_safe_path_component(ref.id):
                logger.warning("Skipping clip with unsafe id %r (%s)", ref.id, ref.name)
                clips.append(ref.model_copy(update={"clip_path": None}))
                continue
            archived = self._archived_clip(work, ref)
            if archived is None:
                logger.warning("Clip %s (%s) missing from archive", ref.id, ref.name)
                clips.append(ref.model_copy(update={"clip_path": None}))
                continue

            target_id, needs_copy = claim_clip_id(self.clips, ref.id, archived)
            if target_id != ref.id:
                renamed[ref.id] = target_id

            sidecar = self._archived_sidecar(archived, ref).model_copy(update={"id": target_id})
            if needs_copy:
                stored = self.clips.store_clip_file(archived, sidecar, permanent=True)
                written.append(self.clips.permanent_wav(target_id).parent)
            else:
                stored = sidecar.model_copy(update={"clip_path": str(self.clips.find_clip_file(target_id))})
            clips.append(ref.model_copy(update={"id": target_id, "clip_path": stored.clip_path}))
            valid += 1

        interstitial = None
        if source.interstitial_path:
            name = Path(source.interstitial_path).name
            archived_sound = work / name
            if archived_sound.is_file():
                assets = self.playlists.assets_dir(new_id)
                assets.mkdir(parents=True, exist_ok=True)
                written.append(assets)
                shutil.copyfile(archived_sound, assets / name)
                interstitial = str(assets / name)
            else:
                logger.warning("Interstitial sound %s missing from archive", name)

        playlist = source.model_copy(
            update={
                "id": new_id,
                "date": utc_now_iso(),
                "clips": clips,
                "interstitial_path": interstitial,
                "export_info": None,
                "import_info": ImportInfo(
                    import_date=utc_now_iso(),
                    original_name=source.name,
                    original_id=source.id or None,
                    valid_clips=valid,
                    total_clips_in_json=len(source.clips),
                    source_file=archive_path.name,
                ),
            }
        )
        return self.playlists.save_playlist(playlist), renamed

    @staticmethod
    def _archived_sidecar(archived: Path, ref: ClipRef) -> ClipRef:
        data = try_read_json(archived.with_suffix(".json"))
        if data is not None:
            try:
                return ClipRef.model_validate(data)
            except ValidationError as e:
                logger.warning("Repairing invalid sidecar for clip %s: %s", ref.id, e)
        return ClipRef(id=ref.id, name=ref.name, start=ref.start, duration=ref.duration, song_name=ref.song_name)
