"""Clip extraction engine.

Decodes a source asset, copies the requested sample window from every
channel, passes it through the offline render stage and encodes WAV bytes.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from powerhour.core.audio.codec import encode_wav
from powerhour.core.audio.decoder import AudioDecoder
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.audio.render import OfflineRenderer
from powerhour.core.clips.models import MAX_CLIPS, Clip
from powerhour.core.errors import InvalidRangeError, PowerHourError, UnsupportedFormatError
from powerhour.core.library.models import AssetRecord
from powerhour.core.utils.formatting import clip_display_name, file_base_name, random_base36

logger = logging.getLogger(__name__)

WILD_CARD_SECONDS = 60.0


def slice_buffer(source: AudioBuffer, start: float, duration: float) -> AudioBuffer:
    """Copy frames ``[floor(start*sr), floor((start+duration)*sr))`` from every channel.

    The window is clipped to the end of the source.
    """
    sr = source.sample_rate
    start_frame = math.floor(start * sr)
    end_frame = min(math.floor((start + duration) * sr), source.frames)
    return AudioBuffer(samples=source.samples[:, start_frame:end_frame].copy(), sample_rate=sr)


class ClipExtractor:
    """
    Cuts clips out of source assets.

    Args:
        decoder: Decodes source files to buffers
        renderer: Offline render stage applied to every slice
        unsupported_extensions: Suffixes rejected before decoding
        id_factory: Produces new clip ids
        rng: Random source for wild card mode
        wild_card_seconds: Clip length used by wild card mode
    """

    def __init__(
        self,
        decoder: AudioDecoder,
        renderer: OfflineRenderer | None = None,
        unsupported_extensions: Iterable[str] = (".m4a",),
        id_factory: Callable[[], str] | None = None,
        rng: random.Random | None = None,
        wild_card_seconds: float = WILD_CARD_SECONDS,
    ) -> None:
        self._decoder = decoder
        self._renderer = renderer or OfflineRenderer()
        self._unsupported = frozenset(ext.lower() for ext in unsupported_extensions)
        self._id_factory = id_factory or (lambda: random_base36(9))
        self._rng = rng or random.Random()
        self._wild_card_seconds = wild_card_seconds

    def check_supported(self, path: str | Path) -> None:
        """
        Raises:
            UnsupportedFormatError: If the container is known to be undecodable
        """
        suffix = Path(path).suffix.lower()
        if suffix in self._unsupported:
            raise UnsupportedFormatError(
                f"{suffix.lstrip('.').upper()} files are not supported for clip extraction. "
                "Convert the file to MP3 or WAV first."
            )

    def extract(self, asset: AssetRecord, start: float, duration: float) -> Clip:
        """Extract one clip.

        The clip lasts ``min(duration, source_duration - start)`` seconds.

        Raises:
            UnsupportedFormatError: If the source cannot be decoded
            InvalidRangeError: If ``start`` is negative or at/after the end of the
                source, or ``duration`` is not positive
            NotFoundError: If the source file is missing
        """
        if start < 0:
            raise InvalidRangeError(f"Start time must not be negative (got {start})")
        if duration <= 0:
            raise InvalidRangeError(f"Clip duration must be positive (got {duration})")

        self.check_supported(asset.path)
        source = self._decoder.decode(Path(asset.path))
        return self._cut(asset, source, start, duration, file_base_name(asset.path))

    def _cut(
        self, asset: AssetRecord, source: AudioBuffer, start: float, duration: float, base_name: str
    ) -> Clip:
        if start >= source.duration:
            raise InvalidRangeError(
                f"Start time {start:.2f}s is beyond the end of {asset.display_name} "
                f"({source.duration:.2f}s)"
            )

        actual = min(duration, source.duration - start)
        sliced = slice_buffer(source, start, actual)
        if sliced.frames == 0:
            raise InvalidRangeError(f"Window at {start:.2f}s of {asset.display_name} holds no samples")

        rendered = self._renderer.render(sliced)
        clip = Clip(
            id=self._id_factory(),
            name=clip_display_name(base_name, start, actual),
            start=start,
            duration=actual,
            song_name=asset.title or asset.display_name,
            artist=asset.artist,
            album=asset.album,
            year=asset.year,
            genre=asset.genre,
            audio_bytes=encode_wav(rendered.samples, rendered.sample_rate),
            sample_rate=rendered.sample_rate,
            channels=rendered.channels,
        )
        logger.debug("Extracted clip %s (%s, %.2fs)", clip.id, clip.name, actual)
        return clip

    def wild_card(self, assets: Sequence[AssetRecord], max_clips: int = MAX_CLIPS) -> list[Clip]:
        """Extract one random window per asset, in shuffled order.

        Each window starts uniformly in ``[0, max(0, duration - 60)]`` and lasts
        ``min(60, duration - start)``. Assets that fail are logged and skipped.
        """
        pool = list(assets)
        self._rng.shuffle(pool)
        clips: list[Clip] = []

        for asset in pool:
            if len(clips) >= max_clips:
                break
            try:
                self.check_supported(asset.path)
                source = self._decoder.decode(Path(asset.path))
                span = self._wild_card_seconds
                start = self._rng.random() * max(0.0, source.duration - span)
                duration = min(span, source.duration - start)
                clips.append(self._cut(asset, source, start, duration, asset.title or file_base_name(asset.path)))
            except PowerHourError as e:
                logger.warning("Wild card skipped %s: %s", asset.display_name, e.message)

        logger.info("Wild card extracted %d clips from %d songs", len(clips), len(pool))
        return clips
