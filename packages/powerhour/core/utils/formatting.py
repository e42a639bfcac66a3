import math
import re
import secrets
import string
import unicodedata
from datetime import UTC, datetime
from pathlib import Path

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``mm:ss`` (minutes are not wrapped at 60)."""
    total = max(0, math.floor(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def clip_display_name(base_name: str, start: float, duration: float) -> str:
    """Derive a clip display name like ``song [01:30 - 02:30]``."""
    return f"{base_name} [{format_timestamp(start)} - {format_timestamp(start + duration)}]"


def file_base_name(path: str | Path) -> str:
    """File name without its final extension, e.g. ``a.b.mp3`` -> ``a.b``."""
    return Path(str(path)).stem


def safe_file_stem(name: str, replacement_char: str = "_") -> str:
    """
    Reduce a display name to a portable file stem.

    Keeps letters, digits, spaces, dots and hyphens; everything else becomes
    the replacement character. Falls back to ``"untitled"`` when nothing is left.
    """
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    name = re.sub(r"[^A-Za-z0-9 ._-]", replacement_char, name).strip(" ." + replacement_char)
    return name or "untitled"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[rem])
    return sign + "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
