"""In-memory audio buffer."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class AudioBuffer:
    """Planar float samples.

    Attributes:
        samples: float32 array shaped ``(channels, frames)``, nominally in [-1, 1]
        sample_rate: Frames per second
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if self.samples.ndim != 2:
            raise ValueError(f"samples must be 2-D (channels, frames), got shape {self.samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")

    @classmethod
    def from_array(cls, samples: np.ndarray, sample_rate: int) -> AudioBuffer:
        """Wrap a 1-D (mono) or 2-D array as float32."""
        arr = np.asarray(samples, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]
        return cls(samples=arr, sample_rate=int(sample_rate))

    @classmethod
    def silence(cls, seconds: float, sample_rate: int, channels: int = 2) -> AudioBuffer:
        frames = int(round(seconds * sample_rate))
        return cls(samples=np.zeros((channels, frames), dtype=np.float32), sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frames / self.sample_rate
