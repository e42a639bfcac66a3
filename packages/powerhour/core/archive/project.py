"""Single-mix project archives (``.phproject``).

Layout::

    manifest.json
    mix.json
    mix.wav
    original_files/**        mirrors backups/{mixId}/
    clips/{clipId}.wav
    drinking/{filename}
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.archive.models import (
    PROJECT_TYPE,
    ArchiveExportResult,
    ProjectImportResult,
    ProjectManifest,
)
from powerhour.core.archive.zip_utils import claim_clip_id, require_archive, safe_extract, zip_directory
from powerhour.core.clips.models import ClipRef
from powerhour.core.clips.store import ClipStore
from powerhour.core.errors import InvalidArchiveError, NotFoundError
from powerhour.core.io.utils import is_safe_path_component, sanitize_path_component
from powerhour.core.mixes.models import Mix, MixRef, SourceProjectData
from powerhour.core.mixes.store import MixStore
from powerhour.core.utils.formatting import random_base36, safe_file_stem, utc_now_iso
from powerhour.core.utils.json import read_json, write_json

logger = logging.getLogger(__name__)

PROJECT_EXTENSION = ".phproject"


class ProjectArchiver:
    """
    Exports a mix with its clips, originals and interstitial sound, and
    imports such archives as a new mix.

    Args:
        mixes: Local mix store
        clips: Local clip store
        projects_dir: Default destination for exported archives
    """

    def __init__(self, mixes: MixStore, clips: ClipStore, projects_dir: Path) -> None:
        self.mixes = mixes
        self.clips = clips
        self.projects_dir = Path(projects_dir)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_project(self, ref: MixRef | Mix | str, destination: Path | None = None) -> ArchiveExportResult:
        """Package one mix into a project archive.

        Missing clips, originals or interstitial sound are logged and left out.

        Raises:
            NotFoundError: If the mix JSON or its audio cannot be located
        """
        resolved = self.mixes.resolve(ref)
        if resolved is None:
            raise NotFoundError(f"Mix not found: {MixRef.of(ref)}")
        if resolved.wav_path is None:
            raise NotFoundError(f"Audio file for mix {MixRef.of(ref)} not found")

        try:
            mix = Mix.model_validate(read_json(resolved.json_path))
        except (ValueError, ValidationError) as e:
            raise NotFoundError(f"Mix metadata for {MixRef.of(ref)} is unreadable: {e}") from e

        destination = Path(destination) if destination else self.projects_dir / f"{safe_file_stem(mix.name)}{PROJECT_EXTENSION}"

        with tempfile.TemporaryDirectory(prefix="ph-export-") as tmp:
            work = Path(tmp)
            shutil.copyfile(resolved.json_path, work / "mix.json")
            shutil.copyfile(resolved.wav_path, work / "mix.wav")

            has_originals = self._copy_originals(mix, work)
            clip_count = self._copy_clips(mix, work)
            has_interstitial = self._copy_interstitial(mix, work)

            manifest = ProjectManifest(
                type=PROJECT_TYPE,
                created=utc_now_iso(),
                mix_id=mix.id,
                mix_name=mix.name,
                has_original_files=has_originals,
                clip_count=clip_count,
                has_drinking_sound=has_interstitial,
            )
            write_json(work / "manifest.json", manifest.to_json_dict())
            zip_directory(work, destination)

        logger.info("Exported project %r to %s", mix.name, destination)
        return ArchiveExportResult(
            path=destination,
            message=f"Exported mix '{mix.name}' with {clip_count} of {len(mix.clips)} clips",
            total_clips=len(mix.clips),
            valid_clips=clip_count,
        )

    def _copy_originals(self, mix: Mix, work: Path) -> bool:
        backup = self.mixes.backup_dir(mix.id)
        if not backup.is_dir() or not any(p.is_file() for p in backup.rglob("*")):
            return False
        shutil.copytree(backup, work / "original_files")
        return True

    def _copy_clips(self, mix: Mix, work: Path) -> int:
        clips_dir = work / "clips"
        clips_dir.mkdir()
        copied = 0
        for ref in mix.clips:
            source = self.clips.resolve_clip_file(ref)
            if source is None:
                logger.warning("Clip %s (%s) not found, leaving it out of the archive", ref.id, ref.name)
                continue
            shutil.copyfile(source, clips_dir / f"{sanitize_path_component(ref.id)}.wav")
            copied += 1
        return copied

    def _interstitial_source(self, mix: Mix) -> Path | None:
        data = mix.source_project_data
        if data is None or not data.interstitial_path:
            return None
        name = Path(data.interstitial_path).name
        for candidate in (self.mixes.backup_dir(mix.id) / "drinking" / name, Path(data.interstitial_path)):
            if candidate.is_file():
                return candidate
        logger.warning("Interstitial sound %s not found for mix %s", name, mix.id)
        return None

    def _copy_interstitial(self, mix: Mix, work: Path) -> bool:
        source = self._interstitial_source(mix)
        if source is None:
            return False
        (work / "drinking").mkdir()
        shutil.copyfile(source, work / "drinking" / source.name)
        return True

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def _new_mix_id(self) -> str:
        while True:
            mix_id = f"import-{int(time.time() * 1000)}-{random_base36(6)}"
            if self.mixes.resolve(MixRef(id=mix_id)) is None and not self.mixes.backup_dir(mix_id).exists():
                return mix_id

    @staticmethod
    def _read_manifest(work: Path) -> ProjectManifest:
        path = work / "manifest.json"
        if not path.is_file():
            raise InvalidArchiveError("Invalid project archive: manifest.json is missing")
        try:
            manifest = ProjectManifest.model_validate(read_json(path))
        except (ValueError, ValidationError) as e:
            raise InvalidArchiveError(f"Invalid project archive: unreadable manifest ({e})") from e
        if manifest.type != PROJECT_TYPE:
            raise InvalidArchiveError(f"Invalid project archive: unexpected type {manifest.type!r}")
        return manifest

    @staticmethod
    def _read_mix(work: Path) -> Mix:
        path = work / "mix.json"
        if not path.is_file():
            raise InvalidArchiveError("Invalid project archive: mix.json is missing")
        try:
            return Mix.model_validate(read_json(path))
        except (ValueError, ValidationError) as e:
            raise InvalidArchiveError(f"Invalid project archive: unreadable mix.json ({e})") from e

    def import_project(self, archive_path: Path) -> ProjectImportResult:
        """Import a project archive as a new mix with a freshly minted id.

        Clip ids are kept unless a different local clip already uses the id;
        such clips are stored under new ids and the mix is rewritten to match.

        Raises:
            NotFoundError: If the archive file does not exist
            InvalidArchiveError: If the archive is not a zip, or lacks a valid
                manifest or mix.json
        """
        archive_path = require_archive(archive_path)

        with tempfile.TemporaryDirectory(prefix="ph-import-") as tmp:
            work = Path(tmp)
            safe_extract(archive_path, work)
            manifest = self._read_manifest(work)
            mix = self._read_mix(work)

            new_id = self._new_mix_id()
            written: list[Path] = []
            try:
                mix, renamed = self._install(work, mix, new_id, written)
            except Exception:
                self._rollback(written, new_id)
                raise

        logger.info("Imported project %r (was %s) as mix %s", mix.name, manifest.mix_id, new_id)
        return ProjectImportResult(
            mix=mix,
            message=f"Imported mix '{mix.name}' with {len(mix.clips)} clips",
            renamed_clips=renamed,
        )

    def _install(self, work: Path, mix: Mix, new_id: str, written: list[Path]) -> tuple[Mix, dict[str, str]]:
        refs = {ref.id: ref for ref in mix.clips}
        renamed: dict[str, str] = {}
        stored_paths: dict[str, str] = {}

        clips_dir = work / "clips"
        for wav in sorted(clips_dir.glob("*.wav")) if clips_dir.is_dir() else []:
            if not is_safe_path_component(wav.stem):
                logger.warning("Skipping archived clip with unsafe name %s", wav.name)
                continue
            target_id, needs_copy = claim_clip_id(self.clips, wav.stem, wav)
            if target_id != wav.stem:
                renamed[wav.stem] = target_id
            if needs_copy:
                ref = refs.get(wav.stem) or ClipRef(id=wav.stem, name=wav.stem)
                stored = self.clips.store_clip_file(wav, ref.model_copy(update={"id": target_id}), permanent=False)
                written += [Path(stored.clip_path), Path(stored.clip_path).with_suffix(".json")]
                stored_paths[target_id] = stored.clip_path
            else:
                stored_paths[target_id] = str(self.clips.find_clip_file(target_id))

        mix = mix.model_copy(update={"id": new_id})
        mix.replace_clip_ids(renamed)
        mix.clips = [
            clip.model_copy(update={"clip_path": stored_paths[clip.id]}) if clip.id in stored_paths else clip
            for clip in mix.clips
        ]

        backup = self.mixes.backup_dir(new_id)
        originals = work / "original_files"
        if originals.is_dir():
            shutil.copytree(originals, backup, dirs_exist_ok=True)
            written.append(backup)

        drinking = work / "drinking"
        sounds = sorted(p for p in drinking.iterdir() if p.is_file()) if drinking.is_dir() else []
        if sounds:
            (backup / "drinking").mkdir(parents=True, exist_ok=True)
            written.append(backup)
            for sound in sounds:
                shutil.copyfile(sound, backup / "drinking" / sound.name)
            data = mix.source_project_data or SourceProjectData()
            mix.source_project_data = data.model_copy(
                update={"interstitial_path": str(backup / "drinking" / sounds[0].name)}
            )
            mix.has_interstitial = True

        wav = work / "mix.wav"
        if wav.is_file():
            mix = self.mixes.save_mix(mix, wav.read_bytes())
        else:
            logger.warning("Project archive has no mix.wav; importing metadata only")
            mix = self.mixes.update_mix_metadata(mix)
        return mix, renamed

    def _rollback(self, written: list[Path], new_id: str) -> None:
        self.mixes.delete_mix(MixRef(id=new_id))
        for path in written:
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            elif path.is_file():
                path.unlink()
