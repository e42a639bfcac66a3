"""PCM/WAV encoding.

Canonical 44-byte header followed by interleaved little-endian int16
samples. Decoding other containers is left to an ``AudioDecoder``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

import numpy as np

HEADER_SIZE = 44
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")
_PCM_FORMAT = 1
_BITS_PER_SAMPLE = 16


@dataclass(frozen=True)
class WavHeader:
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    @property
    def frames(self) -> int:
        return self.data_size // self.block_align


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode planar float samples as a 16-bit PCM WAV byte stream.

    Values are clamped to [-1, 1] and scaled by 32768, rounding to the
    nearest integer and saturating at 32767.

    Args:
        samples: Array shaped ``(channels, frames)``; a 1-D array is treated as mono
        sample_rate: Frames per second

    Returns:
        Complete WAV file contents

    Example:
        >>> data = encode_wav(np.zeros((2, 44100), dtype=np.float32), 44100)
        >>> len(data)
        176444
    """
    arr = np.asarray(samples, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr[np.newaxis, :]
    if arr.ndim != 2:
        raise ValueError(f"Expected (channels, frames) samples, got shape {arr.shape}")

    channels = arr.shape[0]
    pcm = np.clip(np.round(np.clip(arr, -1.0, 1.0) * 32768.0), -32768, 32767).astype("<i2")
    data = pcm.T.tobytes()

    block_align = channels * (_BITS_PER_SAMPLE // 8)
    header = _HEADER_STRUCT.pack(
        b"RIFF",
        36 + len(data),
        b"WAVE",
        b"fmt ",
        16,
        _PCM_FORMAT,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        _BITS_PER_SAMPLE,
        b"data",
        len(data),
    )
    return header + data


def parse_wav_header(data: bytes) -> WavHeader:
    """Read the canonical 44-byte header written by :func:`encode_wav`.

    Raises:
        ValueError: If the bytes do not start with a canonical PCM header
    """
    if len(data) < HEADER_SIZE:
        raise ValueError("Data too short for a WAV header")
    (
        riff,
        _chunk_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits,
        data_tag,
        data_size,
    ) = _HEADER_STRUCT.unpack_from(data)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise ValueError("Not a canonical RIFF/WAVE header")
    if fmt_size != 16 or audio_format != _PCM_FORMAT:
        raise ValueError(f"Unsupported WAV format tag {audio_format}")
    return WavHeader(
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits,
        data_size=data_size,
    )
