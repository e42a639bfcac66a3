"""Clip extraction and storage."""

from powerhour.core.clips.extractor import ClipExtractor, slice_buffer
from powerhour.core.clips.models import MAX_CLIPS, Clip, ClipRef, ClipSequence
from powerhour.core.clips.store import ClipStore

__all__ = ["MAX_CLIPS", "Clip", "ClipExtractor", "ClipRef", "ClipSequence", "ClipStore", "slice_buffer"]
