"""Tests for clip extraction and wild card mode."""

from __future__ import annotations

import random

import numpy as np
import pytest

from powerhour.core.audio.codec import parse_wav_header
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.clips import ClipExtractor, slice_buffer
from powerhour.core.errors import InvalidRangeError, UnsupportedFormatError
from powerhour.core.library import AssetRecord
from tests.conftest import StubDecoder, make_buffer

SR = 100


def asset(path: str, title: str | None = None) -> AssetRecord:
    return AssetRecord(path=path, display_name=path.rsplit("/", 1)[-1], title=title)


@pytest.fixture
def extractor(decoder: StubDecoder) -> ClipExtractor:
    return ClipExtractor(decoder, rng=random.Random(7))


class TestSliceBuffer:
    """Tests for slice_buffer."""

    def test_floor_frame_bounds(self):
        """The window covers frames floor(start*sr) to floor((start+duration)*sr)."""
        source = AudioBuffer.from_array(np.arange(1000, dtype=np.float32), SR)

        sliced = slice_buffer(source, 1.015, 0.5)

        assert sliced.frames == 50
        assert sliced.samples[0, 0] == 101

    def test_clipped_to_source_end(self):
        """Windows running past the end stop at the last frame."""
        source = make_buffer(2.0, SR)

        assert slice_buffer(source, 1.5, 10).frames == 50


class TestExtract:
    """Tests for ClipExtractor.extract."""

    def test_duration_clamped_to_source_end(self, decoder: StubDecoder, extractor: ClipExtractor):
        """A 60s request 10s before the end yields a 10s clip."""
        decoder.register("/music/Song.mp3", make_buffer(170, SR))

        clip = extractor.extract(asset("/music/Song.mp3"), 160, 60)

        assert clip.duration == pytest.approx(10)
        assert clip.name == "Song [02:40 - 02:50]"
        header = parse_wav_header(clip.audio_bytes)
        assert header.frames == 10 * SR
        assert header.channels == 2
        assert header.sample_rate == SR

    def test_full_window(self, decoder: StubDecoder, extractor: ClipExtractor):
        """A window inside the source keeps the requested length and copies every channel."""
        decoder.register("/music/Song.mp3", make_buffer(170, SR, channels=2, value=0.25))

        clip = extractor.extract(asset("/music/Song.mp3", title="Proper Title"), 30, 60)

        assert clip.duration == 60
        assert clip.start == 30
        assert clip.song_name == "Proper Title"
        assert clip.channels == 2
        pcm = np.frombuffer(clip.audio_bytes[44:], dtype="<i2").reshape(-1, 2)
        assert pcm[0].tolist() == [8192, 16384]

    def test_song_name_falls_back_to_display_name(self, decoder: StubDecoder, extractor: ClipExtractor):
        """Untitled assets use their display name."""
        decoder.register("/music/track.wav", make_buffer(5, SR))

        clip = extractor.extract(asset("/music/track.wav"), 0, 1)

        assert clip.song_name == "track.wav"

    @pytest.mark.parametrize("start", [170, 200])
    def test_start_at_or_after_end(self, decoder: StubDecoder, extractor: ClipExtractor, start: float):
        """Starting at or beyond the end of the source is rejected."""
        decoder.register("/music/Song.mp3", make_buffer(170, SR))

        with pytest.raises(InvalidRangeError):
            extractor.extract(asset("/music/Song.mp3"), start, 60)

    @pytest.mark.parametrize(("start", "duration"), [(-1, 60), (0, 0), (0, -5)])
    def test_invalid_window(self, decoder: StubDecoder, extractor: ClipExtractor, start: float, duration: float):
        """Negative starts and non-positive durations are rejected before decoding."""
        with pytest.raises(InvalidRangeError):
            extractor.extract(asset("/music/Song.mp3"), start, duration)
        assert decoder.calls == []

    def test_m4a_rejected_before_decoding(self, decoder: StubDecoder, extractor: ClipExtractor):
        """Known-undecodable containers fail fast with a conversion hint."""
        with pytest.raises(UnsupportedFormatError, match="M4A"):
            extractor.extract(asset("/music/Song.M4A"), 0, 60)
        assert decoder.calls == []

    def test_ids_from_factory(self, decoder: StubDecoder):
        """Clip ids come from the configured factory."""
        decoder.register("/music/a.mp3", make_buffer(5, SR))
        ids = iter(["first", "second"])
        extractor = ClipExtractor(decoder, id_factory=lambda: next(ids))

        assert extractor.extract(asset("/music/a.mp3"), 0, 1).id == "first"
        assert extractor.extract(asset("/music/a.mp3"), 1, 1).id == "second"


class TestWildCard:
    """Tests for ClipExtractor.wild_card."""

    def test_failures_are_skipped(self, decoder: StubDecoder, extractor: ClipExtractor):
        """Undecodable, unsupported and missing assets are skipped."""
        decoder.register("/music/good.mp3", make_buffer(200, SR))
        assets = [asset("/music/good.mp3"), asset("/music/bad.m4a"), asset("/music/missing.mp3")]

        clips = extractor.wild_card(assets)

        assert len(clips) == 1
        assert clips[0].song_name == "good.mp3"

    def test_windows_stay_inside_source(self, decoder: StubDecoder, extractor: ClipExtractor):
        """Each clip lasts a minute and starts no later than duration minus 60s."""
        for i in range(5):
            decoder.register(f"/music/{i}.mp3", make_buffer(100 + i * 20, SR))

        clips = extractor.wild_card([asset(f"/music/{i}.mp3") for i in range(5)])

        assert len(clips) == 5
        for clip in clips:
            assert clip.duration == pytest.approx(60)
            assert 0 <= clip.start

    def test_short_song_uses_whole_track(self, decoder: StubDecoder, extractor: ClipExtractor):
        """Songs shorter than a minute are taken from the start."""
        decoder.register("/music/short.mp3", make_buffer(30, SR))

        (clip,) = extractor.wild_card([asset("/music/short.mp3")])

        assert clip.start == 0
        assert clip.duration == pytest.approx(30)

    def test_respects_max_clips(self, decoder: StubDecoder, extractor: ClipExtractor):
        """No more than max_clips clips are produced."""
        for i in range(5):
            decoder.register(f"/music/{i}.mp3", make_buffer(90, SR))

        clips = extractor.wild_card([asset(f"/music/{i}.mp3") for i in range(5)], max_clips=2)

        assert len(clips) == 2
