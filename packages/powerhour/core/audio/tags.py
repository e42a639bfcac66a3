"""Embedded tag extraction using mutagen.

Reads title/artist/album/genre/year from ID3, Vorbis and MP4 tags with a
single set of canonical field names.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from mutagen import File
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TagMetadata(BaseModel):
    """Tags captured for one audio file. Missing tags are None."""

    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    year: str | None = None


def extract_tags(audio_path: str | Path) -> TagMetadata:
    """Extract embedded tags from an audio file.

    Multi-value artist and genre tags are joined with ", ".

    Args:
        audio_path: Path to audio file

    Returns:
        TagMetadata; all fields None when the file has no readable tags

    Raises:
        OSError: If the file cannot be opened
        mutagen.MutagenError: If the container is corrupt
    """
    audio_file = File(str(audio_path))

    if audio_file is None or getattr(audio_file, "tags", None) is None:
        logger.debug("No tags found in %s", Path(audio_path).name)
        return TagMetadata()

    tags = audio_file.tags

    artists = _get_tag_list(tags, ["TPE1", "artist", "\xa9ART"])
    genres = _get_tag_list(tags, ["TCON", "genre", "\xa9gen"])
    date_raw = _get_tag_value(tags, ["TDRC", "TYER", "date", "\xa9day", "year"])

    return TagMetadata(
        title=_get_tag_value(tags, ["TIT2", "title", "\xa9nam"]),
        artist=", ".join(artists) or None,
        album=_get_tag_value(tags, ["TALB", "album", "\xa9alb"]),
        genre=", ".join(genres) or None,
        year=_extract_year(date_raw) if date_raw else None,
    )


def _get_tag_value(tags: Any, keys: list[str]) -> str | None:
    """Get first non-empty tag value from list of possible keys."""
    for key in keys:
        if key in tags:
            value = tags[key]
            if hasattr(value, "text"):
                # ID3 frames
                if value.text:
                    text = str(value.text[0]).strip()
                    return text or None
            elif isinstance(value, list) and value:
                # Vorbis comments, MP4 atoms
                text = str(value[0]).strip()
                return text or None
            elif isinstance(value, str):
                return value.strip() or None
    return None


def _get_tag_list(tags: Any, keys: list[str]) -> list[str]:
    """Get tag value as list (for multi-value fields like genre)."""
    for key in keys:
        if key in tags:
            value = tags[key]
            if hasattr(value, "text"):
                return [str(v).strip() for v in value.text if str(v).strip()]
            elif isinstance(value, list):
                return [str(v).strip() for v in value if str(v).strip()]
            elif isinstance(value, str):
                return [value.strip()] if value.strip() else []
    return []


def _extract_year(date_str: str) -> str | None:
    """Pull a four-digit year out of YYYY, YYYY-MM-DD and similar strings."""
    match = re.search(r"\b(\d{4})\b", date_str)
    return match.group(1) if match else None
