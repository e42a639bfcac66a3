"""Clip storage.

Two locations hold clips:

- permanent: ``clips/{id}/{id}.wav`` + ``{id}.json``
- temporary: ``temp_clips/{id}.wav`` + ``{id}.json`` (mix working set, imports)

Lookups by id try the temporary folder first, then the permanent one.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from pydantic import ValidationError

from powerhour.core.clips.models import Clip, ClipRef
from powerhour.core.errors import NotFoundError
from powerhour.core.io.utils import sanitize_path_component
from powerhour.core.utils.formatting import random_base36
from powerhour.core.utils.json import try_read_json, write_json

logger = logging.getLogger(__name__)

INTERSTITIAL_PREFIX = "drinking_sound_"


class ClipStore:
    """
    File-backed clip store.

    Args:
        clips_dir: Permanent per-clip folders
        temp_dir: Flat temporary clip folder
    """

    def __init__(self, clips_dir: Path, temp_dir: Path) -> None:
        self.clips_dir = Path(clips_dir)
        self.temp_dir = Path(temp_dir)

    # -- locations ------------------------------------------------------

    def permanent_dir(self, clip_id: str) -> Path:
        return self.clips_dir / sanitize_path_component(clip_id)

    def permanent_wav(self, clip_id: str) -> Path:
        key = sanitize_path_component(clip_id)
        return self.clips_dir / key / f"{key}.wav"

    def temp_wav(self, clip_id: str) -> Path:
        return self.temp_dir / f"{sanitize_path_component(clip_id)}.wav"

    def exists(self, clip_id: str) -> bool:
        return self.temp_wav(clip_id).is_file() or self.permanent_wav(clip_id).is_file()

    def new_clip_id(self) -> str:
        """Random 9-char base36 id not used by any stored clip."""
        while True:
            clip_id = random_base36(9)
            if not self.exists(clip_id):
                return clip_id

    def find_clip_file(self, clip_id: str) -> Path | None:
        for candidate in (self.temp_wav(clip_id), self.permanent_wav(clip_id)):
            if candidate.is_file():
                return candidate
        return None

    def resolve_clip_file(self, ref: ClipRef) -> Path | None:
        """Declared ``clip_path`` first, then the stored locations for ``ref.id``."""
        if ref.clip_path and Path(ref.clip_path).is_file():
            return Path(ref.clip_path)
        return self.find_clip_file(ref.id)

    def read_sidecar(self, clip_id: str) -> ClipRef | None:
        for wav in (self.temp_wav(clip_id), self.permanent_wav(clip_id)):
            data = try_read_json(wav.with_suffix(".json"))
            if data is None:
                continue
            try:
                return ClipRef.model_validate(data)
            except ValidationError as e:
                logger.warning("Invalid clip sidecar %s: %s", wav.with_suffix(".json"), e)
        return None

    # -- writes ---------------------------------------------------------

    def _write(self, wav_path: Path, audio: bytes | Path, ref: ClipRef) -> ClipRef:
        wav_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(audio, Path):
            shutil.copyfile(audio, wav_path)
        else:
            wav_path.write_bytes(audio)
        stored = ref.model_copy(update={"clip_path": str(wav_path)})
        write_json(wav_path.with_suffix(".json"), stored.to_json_dict())
        return stored

    def save_clip(self, clip: Clip) -> ClipRef:
        """Persist a clip into its permanent folder."""
        stored = self._write(self.permanent_wav(clip.id), clip.audio_bytes, clip.to_ref())
        logger.info("Saved clip %s (%s)", clip.id, clip.name)
        return stored

    def save_temp_clip(self, clip: Clip) -> ClipRef:
        return self._write(self.temp_wav(clip.id), clip.audio_bytes, clip.to_ref())

    def store_clip_file(self, source: Path, ref: ClipRef, permanent: bool = True) -> ClipRef:
        """Copy an existing WAV file in under ``ref.id`` and write its sidecar."""
        target = self.permanent_wav(ref.id) if permanent else self.temp_wav(ref.id)
        return self._write(target, Path(source), ref)

    def save_interstitial_sound(self, audio: bytes) -> Path:
        """Store an interstitial sound as ``drinking_sound_{ms}.wav`` in the temp folder."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / f"{INTERSTITIAL_PREFIX}{int(time.time() * 1000)}.wav"
        path.write_bytes(audio)
        return path

    # -- reads and deletes ----------------------------------------------

    def get_clip(self, clip_id: str) -> Clip:
        """Load a clip with its audio.

        Raises:
            NotFoundError: If no stored clip has this id
        """
        wav = self.find_clip_file(clip_id)
        if wav is None:
            raise NotFoundError(f"Clip not found: {clip_id}")
        ref = self.read_sidecar(clip_id) or ClipRef(id=clip_id, name=clip_id)
        return Clip.model_validate(
            {**ref.model_dump(), "clip_path": str(wav), "audio_bytes": wav.read_bytes()}
        )

    def list_clips(self) -> list[ClipRef]:
        """Every stored clip, temp clips first; an id stored in both places is listed once."""
        seen: set[str] = set()
        clips: list[ClipRef] = []
        candidates = sorted(self.temp_dir.glob("*.wav")) if self.temp_dir.is_dir() else []
        if self.clips_dir.is_dir():
            candidates += sorted(self.clips_dir.glob("*/*.wav"))

        for wav in candidates:
            clip_id = wav.stem
            if clip_id in seen or clip_id.startswith(INTERSTITIAL_PREFIX):
                continue
            seen.add(clip_id)
            ref = self.read_sidecar(clip_id) or ClipRef(id=clip_id, name=clip_id)
            clips.append(ref.model_copy(update={"clip_path": str(wav)}))
        return clips

    def delete_clip(self, clip_id: str) -> bool:
        """Remove a clip from both locations. Returns False if nothing was stored."""
        removed = False
        for path in (self.temp_wav(clip_id), self.temp_wav(clip_id).with_suffix(".json")):
            if path.is_file():
                path.unlink()
                removed = True
        folder = self.permanent_dir(clip_id)
        if folder.is_dir():
            shutil.rmtree(folder)
            removed = True
        if removed:
            logger.info("Deleted clip %s", clip_id)
        return removed

    def clear_temp_clips(self) -> int:
        """Delete every file in the temp clip folder. Returns the number removed."""
        if not self.temp_dir.is_dir():
            return 0
        count = 0
        for path in self.temp_dir.iterdir():
            if path.is_file():
                path.unlink()
                count += 1
        return count
