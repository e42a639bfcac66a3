"""Zip container helpers shared by project and playlist archives."""

from __future__ import annotations

import filecmp
import logging
import zipfile
from pathlib import Path

from powerhour.core.clips.store import ClipStore
from powerhour.core.errors import InvalidArchiveError, NotFoundError

logger = logging.getLogger(__name__)

ZIP_SIGNATURE = b"PK\x03\x04"


def has_zip_signature(path: Path) -> bool:
    """True if the file starts with a zip local-file-header signature."""
    with Path(path).open("rb") as f:
        return f.read(len(ZIP_SIGNATURE)) == ZIP_SIGNATURE


def require_archive(path: Path) -> Path:
    """
    Raises:
        NotFoundError: If the archive does not exist
        InvalidArchiveError: If it is not a zip container
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Archive not found: {path}")
    if not has_zip_signature(path):
        raise InvalidArchiveError(f"{path.name} is not a valid archive (missing ZIP signature)")
    return path


def zip_directory(source_dir: Path, destination: Path) -> Path:
    """Zip the contents of ``source_dir`` (paths relative to it) into ``destination``."""
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for path in sorted(Path(source_dir).rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(source_dir).as_posix())
    logger.debug("Wrote archive %s (%d bytes)", destination, destination.stat().st_size)
    return destination


def safe_extract(archive: Path, destination: Path) -> None:
    """Extract every member, refusing any that would land outside ``destination``.

    Raises:
        InvalidArchiveError: If the zip is corrupt or a member escapes the destination
    """
    root = Path(destination).resolve()
    try:
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                target = (root / member).resolve()
                if not target.is_relative_to(root):
                    raise InvalidArchiveError(f"Archive member escapes extraction folder: {member}")
            zf.extractall(root)
    except zipfile.BadZipFile as e:
        raise InvalidArchiveError(f"{Path(archive).name} is not a readable zip archive: {e}") from e


def claim_clip_id(clips: ClipStore, clip_id: str, incoming: Path) -> tuple[str, bool]:
    """Decide which local id an incoming clip file is stored under.

    Returns ``(target_id, needs_copy)``. An id already used locally by
    identical audio is reused without copying; one used by different audio
    gets a freshly minted id.
    """
    existing = clips.find_clip_file(clip_id)
    if existing is None:
        return clip_id, True
    if filecmp.cmp(existing, incoming, shallow=False):
        return clip_id, False
    new_id = clips.new_clip_id()
    logger.info("Clip id %s already used locally; importing as %s", clip_id, new_id)
    return new_id, True
