"""Decoding source audio into sample buffers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import librosa
import numpy as np

from powerhour.core.audio.models import AudioBuffer
from powerhour.core.errors import NotFoundError, UnsupportedFormatError

logger = logging.getLogger(__name__)


class AudioDecoder(Protocol):
    """Turns an audio file into an AudioBuffer at its native sample rate."""

    def decode(self, path: Path) -> AudioBuffer:
        """
        Raises:
            NotFoundError: If the file does not exist
            UnsupportedFormatError: If the file cannot be decoded
        """
        ...


class LibrosaDecoder:
    """Decoder backed by ``librosa.load``.

    Keeps the native sample rate and every channel, so slicing happens on
    the original sample grid.
    """

    def decode(self, path: Path) -> AudioBuffer:
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"Audio file not found: {path}")

        try:
            y, sr = librosa.load(str(path), sr=None, mono=False)
        except Exception as e:
            # soundfile and audioread raise unrelated exception types
            raise UnsupportedFormatError(f"Could not decode {path.name}: {e}") from e

        y = np.asarray(y, dtype=np.float32)
        if y.size == 0:
            raise UnsupportedFormatError(f"{path.name} contains no audio")

        logger.debug("Decoded %s: sr=%d shape=%s", path.name, sr, y.shape)
        return AudioBuffer.from_array(y, int(sr))
