"""Shared pytest fixtures for Power Hour tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import subprocess
import wave

import numpy as np
import pytest

from powerhour.core.audio.codec import encode_wav
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.audio.tags import TagMetadata
from powerhour.core.errors import NotFoundError, UnsupportedFormatError
from powerhour.core.session import PowerHourSession

# ============================================================================
# Audio helpers
# ============================================================================


def make_buffer(seconds: float, sample_rate: int = 44100, channels: int = 2, value: float = 0.25) -> AudioBuffer:
    """Constant-valued buffer; channel ``c`` holds ``value * (c + 1)``."""
    frames = int(round(seconds * sample_rate))
    samples = np.stack([np.full(frames, value * (c + 1), dtype=np.float32) for c in range(channels)])
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


class StubDecoder:
    """Decoder for tests.

    Registered paths return their buffer; real 16-bit WAV files are read with
    the ``wave`` module; anything else is rejected like an undecodable file.
    """

    def __init__(self) -> None:
        self.buffers: dict[str, AudioBuffer] = {}
        self.calls: list[Path] = []

    def register(self, path: Path | str, buffer: AudioBuffer) -> None:
        self.buffers[str(path)] = buffer

    def decode(self, path: Path) -> AudioBuffer:
        self.calls.append(Path(path))
        if str(path) in self.buffers:
            return self.buffers[str(path)]
        if not Path(path).is_file():
            raise NotFoundError(f"Audio file not found: {path}")
        if Path(path).suffix.lower() != ".wav":
            raise UnsupportedFormatError(f"Could not decode {Path(path).name}")

        with wave.open(str(path), "rb") as wf:
            channels = wf.getnchannels()
            sample_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
        pcm = np.frombuffer(raw, dtype="<i2").reshape(-1, channels).T
        return AudioBuffer(samples=(pcm / 32768.0).astype(np.float32), sample_rate=sample_rate)


class FakeRunner:
    """Stands in for subprocess.run."""

    def __init__(self, returncode: int = 0, stderr: str = "", exc: Exception | None = None) -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.exc = exc
        self.commands: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def decoder() -> StubDecoder:
    """Fresh stub decoder."""
    return StubDecoder()


@pytest.fixture
def wav_file() -> Callable[..., Path]:
    """Factory writing a constant-valued 16-bit WAV file."""

    def _write(
        path: Path, seconds: float = 1.0, sample_rate: int = 8000, channels: int = 2, value: float = 0.25
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        buffer = make_buffer(seconds, sample_rate, channels, value)
        path.write_bytes(encode_wav(buffer.samples, buffer.sample_rate))
        return path

    return _write


def stub_tags(path: Path) -> TagMetadata:
    """Tag reader deriving tags from ``Artist - Title.ext`` file names."""
    stem = Path(path).stem
    if " - " in stem:
        artist, title = stem.split(" - ", 1)
        return TagMetadata(title=title, artist=artist)
    return TagMetadata()


@pytest.fixture
def session(tmp_path: Path, decoder: StubDecoder, monkeypatch: pytest.MonkeyPatch) -> PowerHourSession:
    """Session rooted in a temporary data directory with stubbed decoding and tags."""
    monkeypatch.delenv("POWERHOUR_DATA_DIR", raising=False)
    return PowerHourSession.from_directory(tmp_path / "data", decoder=decoder, tag_reader=stub_tags)
