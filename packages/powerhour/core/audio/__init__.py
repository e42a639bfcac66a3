"""Audio decoding, rendering, tag extraction and WAV encoding."""

from powerhour.core.audio.codec import WavHeader, encode_wav, parse_wav_header
from powerhour.core.audio.decoder import AudioDecoder, LibrosaDecoder
from powerhour.core.audio.models import AudioBuffer
from powerhour.core.audio.render import OfflineRenderer, conform_sample_rate

__all__ = [
    "AudioBuffer",
    "AudioDecoder",
    "LibrosaDecoder",
    "OfflineRenderer",
    "WavHeader",
    "conform_sample_rate",
    "encode_wav",
    "parse_wav_header",
]
