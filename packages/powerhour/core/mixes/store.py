"""Mix storage and per-mix backups of original source files."""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.errors import NotFoundError
from powerhour.core.io.utils import sanitize_path_component
from powerhour.core.mixes.models import Mix, MixRef
from powerhour.core.mixes.resolver import ResolvedMix, ResolverChain, default_mix_resolver
from powerhour.core.utils.formatting import random_base36, safe_file_stem
from powerhour.core.utils.json import read_json, write_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OriginalFile:
    relative_path: str
    path: Path


class MixStore:
    """
    Mixes as ``{key}.wav`` + ``{key}.json`` pairs, where ``key`` is the mix id
    (or, for legacy mixes, the name).

    Args:
        mixes_dir: Mix folder
        backups_dir: Root of ``{mixId}/`` backup folders
        resolver: Strategy chain for locating a mix's files
    """

    def __init__(self, mixes_dir: Path, backups_dir: Path, resolver: ResolverChain | None = None) -> None:
        self.mixes_dir = Path(mixes_dir)
        self.backups_dir = Path(backups_dir)
        self.resolver = resolver or default_mix_resolver()

    @staticmethod
    def new_mix_id() -> str:
        return f"mix_{int(time.time() * 1000)}_{random_base36(6)}"

    def file_key(self, mix: Mix) -> str:
        return sanitize_path_component(mix.id) if mix.id else safe_file_stem(mix.name)

    def backup_dir(self, mix_id: str) -> Path:
        return self.backups_dir / sanitize_path_component(mix_id)

    def resolve(self, ref: MixRef | Mix | str) -> ResolvedMix | None:
        return self.resolver.resolve(self.mixes_dir, MixRef.of(ref))

    def _load(self, resolved: ResolvedMix) -> Mix:
        mix = Mix.model_validate(read_json(resolved.json_path))
        if resolved.wav_path is not None:
            mix.local_file_path = str(resolved.wav_path)
        return mix

    # -- create / read --------------------------------------------------

    def save_mix(self, mix: Mix, audio: bytes) -> Mix:
        """Write the WAV and JSON sidecar, replacing any files with the same key."""
        self.mixes_dir.mkdir(parents=True, exist_ok=True)
        key = self.file_key(mix)
        wav_path = self.mixes_dir / f"{key}.wav"
        wav_path.write_bytes(audio)
        write_json(self.mixes_dir / f"{key}.json", mix.to_json_dict())
        saved = mix.model_copy(update={"local_file_path": str(wav_path)})
        logger.info("Saved mix %r as %s", mix.name, wav_path.name)
        return saved

    def get_mix(self, ref: MixRef | Mix | str) -> Mix:
        """
        Raises:
            NotFoundError: If no mix matches
        """
        resolved = self.resolve(ref)
        if resolved is None:
            raise NotFoundError(f"Mix not found: {MixRef.of(ref)}")
        return self._load(resolved)

    def list_mixes(self) -> list[Mix]:
        """All readable mixes, newest first. Unreadable sidecars are skipped."""
        if not self.mixes_dir.is_dir():
            return []
        mixes: list[Mix] = []
        for json_path in sorted(self.mixes_dir.glob("*.json")):
            try:
                mix = Mix.model_validate(read_json(json_path))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("Skipping unreadable mix %s: %s", json_path.name, e)
                continue
            wav = json_path.with_suffix(".wav")
            if wav.is_file():
                mix.local_file_path = str(wav)
            mixes.append(mix)
        return sorted(mixes, key=lambda m: m.created_at, reverse=True)

    # -- update ---------------------------------------------------------

    def update_mix_metadata(self, mix: Mix) -> Mix:
        """Rewrite a mix's sidecar in place, or create ``{id}.json`` if none resolves."""
        resolved = self.resolve(mix)
        json_path = resolved.json_path if resolved else self.mixes_dir / f"{self.file_key(mix)}.json"
        write_json(json_path, mix.to_json_dict())
        if resolved is None:
            logger.info("No existing files for mix %s; created %s", mix.id, json_path.name)
        return mix

    def rename_mix(self, ref: MixRef | Mix | str, new_name: str) -> Mix:
        """
        Change a mix's display name. Name-keyed legacy files are renamed on disk.

        Raises:
            NotFoundError: If no mix matches
        """
        resolved = self.resolve(ref)
        if resolved is None:
            raise NotFoundError(f"Mix not found: {MixRef.of(ref)}")
        mix = self._load(resolved).model_copy(update={"name": new_name})

        json_path, wav_path = resolved.json_path, resolved.wav_path
        if not mix.id or json_path.stem != sanitize_path_component(mix.id):
            new_key = safe_file_stem(new_name)
            new_json = self.mixes_dir / f"{new_key}.json"
            json_path.rename(new_json)
            json_path = new_json
            if wav_path is not None:
                new_wav = self.mixes_dir / f"{new_key}.wav"
                wav_path.rename(new_wav)
                mix.local_file_path = str(new_wav)

        write_json(json_path, mix.to_json_dict())
        logger.info("Renamed mix %s to %r", MixRef.of(ref), new_name)
        return mix

    def replace_mix(self, old: MixRef | Mix | str, mix: Mix, audio: bytes) -> Mix:
        """Edit-and-resave: remove the old files, carry backups over to the new id, save."""
        resolved = self.resolve(old)
        old_mix = self._load(resolved) if resolved else None
        if resolved is not None:
            self._unlink(resolved.json_path, resolved.wav_path)

        if old_mix is not None and old_mix.id and old_mix.id != mix.id:
            old_backup, new_backup = self.backup_dir(old_mix.id), self.backup_dir(mix.id)
            if old_backup.is_dir() and not new_backup.exists():
                shutil.move(str(old_backup), str(new_backup))
        return self.save_mix(mix, audio)

    # -- delete ---------------------------------------------------------

    @staticmethod
    def _unlink(*paths: Path | None) -> int:
        count = 0
        for path in paths:
            if path is not None and path.is_file():
                path.unlink()
                count += 1
        return count

    def delete_mix(self, ref: MixRef | Mix | str) -> bool:
        """Remove id- and name-keyed files and backup folders. False if nothing existed."""
        ref = MixRef.of(ref)
        removed = 0

        resolved = self.resolve(ref)
        names = {ref.id, ref.name}
        if resolved is not None:
            try:
                data = read_json(resolved.json_path)
            except (OSError, ValueError):
                data = {}
            names |= {data.get("id"), data.get("name")}
            removed += self._unlink(resolved.json_path, resolved.wav_path)

        for stem in {s for s in names if s}:
            for key in {sanitize_path_component(stem), stem, safe_file_stem(stem)}:
                if Path(key).name != key:
                    continue
                removed += self._unlink(self.mixes_dir / f"{key}.json", self.mixes_dir / f"{key}.wav")
            backup = self.backup_dir(stem)
            if backup.is_dir():
                shutil.rmtree(backup)
                removed += 1

        if removed:
            logger.info("Deleted mix %s", ref)
        return removed > 0

    # -- backups --------------------------------------------------------

    def backup_original_files(self, mix_id: str, files: list[tuple[Path, str]]) -> int:
        """Copy ``(source, relative_path)`` pairs under ``backups/{mixId}/``.

        Missing sources and paths escaping the backup folder are skipped.
        """
        root = self.backup_dir(mix_id)
        copied = 0
        for source, relative in files:
            target = (root / relative).resolve()
            if not target.is_relative_to(root.resolve()):
                logger.warning("Refusing backup path outside %s: %s", root, relative)
                continue
            if not Path(source).is_file():
                logger.warning("Original file missing, not backed up: %s", source)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied += 1
        logger.info("Backed up %d original files for mix %s", copied, mix_id)
        return copied

    def load_original_files(self, mix_id: str) -> list[OriginalFile]:
        root = self.backup_dir(mix_id)
        if not root.is_dir():
            return []
        return [
            OriginalFile(relative_path=path.relative_to(root).as_posix(), path=path)
            for path in sorted(root.rglob("*"))
            if path.is_file()
        ]
