"""Library identifiers.

Current ids are ``lib_`` plus 24 hex chars of a SHA256 over the normalized
folder path. Earlier releases keyed records with a 20-char
base64-prefix-plus-hash form (and before that a 16-char form); those are
recognised so stored records can be migrated.
"""

import base64
import hashlib
import re
from pathlib import PurePath

from powerhour.core.utils.formatting import to_base36

_CURRENT_ID = re.compile(r"^lib_[0-9a-f]{24}$")
DEFAULT_LIBRARY_NAME = "Music Library"


def normalize_library_path(path: str | PurePath) -> str:
    """Case-fold and slash-normalize a folder path; trailing slashes are dropped."""
    normalized = str(path).replace("\\", "/").casefold()
    stripped = normalized.rstrip("/")
    return stripped or "/"


def library_id(path: str | PurePath) -> str:
    """
    Derive the stable id for a library folder.

    Example:
        >>> library_id("/Music") == library_id("/music/")
        True
    """
    digest = hashlib.sha256(normalize_library_path(path).encode("utf-8")).hexdigest()
    return f"lib_{digest[:24]}"


def is_current_id(key: str) -> bool:
    return bool(_CURRENT_ID.match(key))


def legacy_library_id(path: str | PurePath) -> str:
    """The 20-char id used by earlier releases: base64 prefix + 32-bit string hash."""
    normalized = str(path).replace("\\", "/").lower()
    encoded = re.sub(r"[^a-zA-Z0-9]", "", base64.b64encode(normalized.encode("utf-8")).decode("ascii"))

    h = 0
    for ch in normalized:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000

    return f"{encoded[:12]}_{to_base36(abs(h))}"[:20]


def library_display_name(path: str | PurePath) -> str:
    """Last path segment, or a generic name for roots."""
    segments = [s for s in str(path).replace("\\", "/").split("/") if s]
    return segments[-1] if segments else DEFAULT_LIBRARY_NAME


def id_form(key: str, path: str | PurePath) -> str:
    """Name the id form ``key`` takes for ``path``; used when logging migrations."""
    if is_current_id(key):
        return "current"
    if key == legacy_library_id(path):
        return "legacy"
    if len(key) <= 16 and "_" not in key:
        return "legacy short"
    return "unrecognised"
