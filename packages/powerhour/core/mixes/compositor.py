"""Mix composition.

``MixCompositor`` concatenates rendered clips in memory with an interstitial
sound between consecutive clips. ``FFmpegExporter`` performs the same
sequencing through an external ffmpeg process for compressed exports.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from powerhour.core.audio.codec import encode_wav
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.audio.render import conform_sample_rate
from powerhour.core.clips.models import ClipRef
from powerhour.core.errors import ExportError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MixRenderResult:
    audio_bytes: bytes
    sample_rate: int
    channels: int
    frames: int
    clips: list[ClipRef] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


def sequence_with_interstitial(items: Sequence, interstitial: object | None) -> list:
    """``[c0, i, c1, i, ..., cN-1]``; no interstitial after the last item."""
    out: list = []
    for index, item in enumerate(items):
        if index and interstitial is not None:
            out.append(interstitial)
        out.append(item)
    return out


class MixCompositor:
    """
    Concatenates clip buffers into one composite.

    Args:
        sample_rate: Rendering context rate; inputs at other rates are resampled on ingest
    """

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = sample_rate

    def compose(self, clips: Sequence[AudioBuffer], interstitial: AudioBuffer | None = None) -> AudioBuffer:
        """Build ``clip0, [interstitial], clip1, ..., clipN-1``.

        The output has the largest channel count among the inputs. An input
        with fewer channels fills the extra ones from its channel 0.

        Raises:
            NotFoundError: If ``clips`` is empty
        """
        if not clips:
            raise NotFoundError("No valid clips to compose")

        clips = [conform_sample_rate(c, self.sample_rate) for c in clips]
        if interstitial is not None:
            interstitial = conform_sample_rate(interstitial, self.sample_rate)

        parts: list[AudioBuffer] = sequence_with_interstitial(clips, interstitial)
        channels = max(part.channels for part in parts)
        total = sum(part.frames for part in parts)

        out = np.zeros((channels, total), dtype=np.float32)
        pos = 0
        for part in parts:
            end = pos + part.frames
            out[: part.channels, pos:end] = part.samples
            if part.channels < channels:
                out[part.channels :, pos:end] = part.samples[0]
            pos = end

        logger.debug(
            "Composed %d clips (%s interstitial): %d frames x %d ch",
            len(clips),
            "with" if interstitial is not None else "no",
            total,
            channels,
        )
        return AudioBuffer(samples=out, sample_rate=self.sample_rate)

    def render(
        self,
        clips: Sequence[AudioBuffer],
        interstitial: AudioBuffer | None = None,
        refs: Sequence[ClipRef] = (),
    ) -> MixRenderResult:
        """Compose and encode to WAV."""
        mix = self.compose(clips, interstitial)
        return MixRenderResult(
            audio_bytes=encode_wav(mix.samples, mix.sample_rate),
            sample_rate=mix.sample_rate,
            channels=mix.channels,
            frames=mix.frames,
            clips=list(refs),
        )


class FFmpegExporter:
    """
    Concatenates audio files into a WAV or MP3 via ffmpeg.

    Every input is normalised to 16-bit stereo at a fixed rate before concat.

    Args:
        ffmpeg_path: ffmpeg executable
        sample_rate: Output sample rate
        mp3_bitrate: Bitrate for MP3 output
        runner: ``subprocess.run``-compatible callable
        timeout_s: Optional timeout for the process
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        sample_rate: int = 44100,
        mp3_bitrate: str = "192k",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        timeout_s: float | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.sample_rate = sample_rate
        self.mp3_bitrate = mp3_bitrate
        self._runner = runner
        self._timeout_s = timeout_s

    @staticmethod
    def output_format(output: Path) -> str:
        return "wav" if Path(output).suffix.lower() == ".wav" else "mp3"

    def build_command(self, clip_paths: Sequence[Path], interstitial: Path | None, output: Path) -> list[str]:
        inputs = sequence_with_interstitial([Path(p) for p in clip_paths], interstitial)

        cmd = [self.ffmpeg_path, "-y"]
        for path in inputs:
            cmd += ["-i", str(path)]

        aformat = f"aformat=sample_fmts=s16:sample_rates={self.sample_rate}:channel_layouts=stereo"
        filters = [f"[{i}:a]{aformat}[a{i}]" for i in range(len(inputs))]
        labels = "".join(f"[a{i}]" for i in range(len(inputs)))
        filters.append(f"{labels}concat=n={len(inputs)}:v=0:a=1[aout]")

        cmd += ["-filter_complex", ";".join(filters), "-map", "[aout]"]
        if self.output_format(output) == "wav":
            cmd += ["-c:a", "pcm_s16le"]
        else:
            cmd += ["-c:a", "libmp3lame", "-b:a", self.mp3_bitrate]
        cmd.append(str(output))
        return cmd

    def export(self, clip_paths: Sequence[Path], interstitial: Path | None, output: Path) -> Path:
        """Run ffmpeg and return the output path.

        Raises:
            NotFoundError: If there are no clips
            ExportError: If ffmpeg is missing, times out, or exits non-zero
        """
        if not clip_paths:
            raise NotFoundError("No valid clips to export")

        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(clip_paths, interstitial, output)
        logger.info("Exporting %d clips to %s", len(clip_paths), output)

        try:
            result = self._runner(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout_s,
                check=False,
            )
        except FileNotFoundError as e:
            raise ExportError(f"ffmpeg not found at {self.ffmpeg_path!r}; install ffmpeg to export audio") from e
        except subprocess.TimeoutExpired as e:
            raise ExportError(f"ffmpeg timed out after {self._timeout_s}s") from e

        if result.returncode != 0:
            tail = (result.stderr or "").strip().splitlines()[-5:]
            raise ExportError(f"ffmpeg exited with code {result.returncode}: {' '.join(tail)}")
        return output
