"""JSON file helpers for sidecars and archive documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def write_json(path: str | Path, obj: Any) -> None:
    """Write object to a JSON file with pretty formatting, creating parent folders.

    Args:
        path: Output file path
        obj: Object to serialize
    """
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    path_obj.write_text(
        json.dumps(obj, indent=2, ensure_ascii=False, default=str),
        encoding="utf-8",
    )


def read_json(path: str | Path) -> dict[str, Any]:
    """Read and parse a JSON object file.

    Raises:
        FileNotFoundError: If the file is missing
        ValueError: If the content is not a JSON object
    """
    data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected JSON object, got {type(data).__name__}")
    return data


def try_read_json(path: str | Path) -> dict[str, Any] | None:
    """Like read_json, but logs and returns None for missing or unparsable files."""
    try:
        return read_json(path)
    except FileNotFoundError:
        return None
    except (ValueError, OSError) as e:
        logger.warning("Could not parse %s: %s", path, e)
        return None
