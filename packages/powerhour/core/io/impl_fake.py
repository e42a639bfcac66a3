"""In-memory filesystem for fast, isolated testing.

Async operations complete immediately but keep the async interface. An
optional byte quota makes writes fail the way a full disk does, which is
how the library store's eviction path is exercised.
"""

import errno
from pathlib import Path

from .models import AbsolutePath, WriteResult


class FakeFileSystem:
    """
    In-memory async filesystem for testing.

    Not thread-safe (use per-test instance).

    Args:
        quota_bytes: Total bytes of file content allowed; ``None`` means unbounded
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = {"/"}
        self.quota_bytes = quota_bytes
        self.write_count = 0

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        result = Path(base).joinpath(*parts)
        if not result.is_absolute():
            result = Path("/") / result
        return AbsolutePath(result)

    async def exists(self, path: AbsolutePath) -> bool:
        path_str = str(Path(path))
        return path_str in self._files or path_str in self._dirs

    async def is_file(self, path: AbsolutePath) -> bool:
        return str(Path(path)) in self._files

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str:
        path_str = str(Path(path))
        if path_str not in self._files:
            raise FileNotFoundError(f"File not found: {path}")
        return self._files[path_str]

    def used_bytes(self, excluding: str | None = None) -> int:
        """Bytes currently held by all files, optionally ignoring one path."""
        return sum(len(v.encode("utf-8")) for k, v in self._files.items() if k != excluding)

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        path_obj = Path(path)
        path_str = str(path_obj)
        size = len(content.encode(encoding))

        if self.quota_bytes is not None:
            if self.used_bytes(excluding=path_str) + size > self.quota_bytes:
                raise OSError(errno.ENOSPC, "No space left on device", path_str)

        self._ensure_parents(path_obj.parent)
        self._files[path_str] = content
        self.write_count += 1

        return WriteResult(path=path_str, bytes_written=size, duration_ms=0.0)

    def _ensure_parents(self, path: Path) -> None:
        parts = path.parts
        for i in range(1, len(parts) + 1):
            self._dirs.add(str(Path(*parts[:i])))

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None:
        path_str = str(Path(path))
        if not exist_ok and path_str in self._dirs:
            raise FileExistsError(f"Directory exists: {path}")
        self._ensure_parents(Path(path))

    async def listdir(self, path: AbsolutePath) -> list[str]:
        path_str = str(Path(path))
        if path_str not in self._dirs:
            raise FileNotFoundError(f"Directory not found: {path}")

        children = {Path(p).name for p in self._files if str(Path(p).parent) == path_str}
        children |= {Path(d).name for d in self._dirs if d != path_str and str(Path(d).parent) == path_str}
        return sorted(children)

    async def remove(self, path: AbsolutePath) -> None:
        path_str = str(Path(path))
        if path_str not in self._files:
            raise FileNotFoundError(f"File not found: {path}")
        del self._files[path_str]
