"""Cache fingerprints for audio files."""

import hashlib
import os
from pathlib import Path


def fingerprint_for(path: str | Path, mtime_ms: int, size: int) -> str:
    """
    Build the cache key ``"{path}:{mtime_ms}:{size}"``.

    Example:
        >>> fingerprint_for("/music/a.mp3", 1700000000123, 2048)
        '/music/a.mp3:1700000000123:2048'
    """
    return f"{path}:{int(mtime_ms)}:{int(size)}"


def stat_fingerprint(path: str | Path, stat_result: os.stat_result | None = None) -> str:
    """Fingerprint a file from its current stat (or a stat already taken)."""
    st = stat_result if stat_result is not None else os.stat(path)
    return fingerprint_for(path, st.st_mtime_ns // 1_000_000, st.st_size)


def fingerprint_digest(fingerprint: str) -> str:
    """SHA256 hex digest of a fingerprint, used as a filename by durable backends."""
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()
