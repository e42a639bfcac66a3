"""Offline rendering stage and sample-rate conformance."""

from __future__ import annotations

import logging

import librosa
import numpy as np

from powerhour.core.audio.models import AudioBuffer

logger = logging.getLogger(__name__)


def conform_sample_rate(buffer: AudioBuffer, target_sr: int, res_type: str = "soxr_hq") -> AudioBuffer:
    """Resample a buffer to ``target_sr`` if it differs.

    Each channel is resampled independently; the result keeps the channel count.
    """
    if buffer.sample_rate == target_sr:
        return buffer

    logger.debug("Resampling %d Hz -> %d Hz (%d ch)", buffer.sample_rate, target_sr, buffer.channels)
    resampled = librosa.resample(
        buffer.samples, orig_sr=buffer.sample_rate, target_sr=target_sr, res_type=res_type, axis=-1
    )
    return AudioBuffer(samples=np.ascontiguousarray(resampled, dtype=np.float32), sample_rate=target_sr)


class OfflineRenderer:
    """Renders a buffer into a fresh destination, independent of playback.

    The destination has the same channel count, length and sample rate as the
    source; the output never aliases the input array.
    """

    def render(self, source: AudioBuffer) -> AudioBuffer:
        destination = np.zeros((source.channels, source.frames), dtype=np.float32)
        destination += source.samples
        return AudioBuffer(samples=destination, sample_rate=source.sample_rate)
