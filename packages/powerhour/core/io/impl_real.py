"""Real filesystem implementation using aiofiles for async I/O.

Writes are atomic: content goes to a temp file in the target directory
which then replaces the destination via ``os.replace``.
"""

import asyncio
import os
import time
from pathlib import Path
from tempfile import NamedTemporaryFile

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from .models import AbsolutePath, WriteResult


class RealFileSystem:
    """Async filesystem backed by the local disk."""

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        """Join paths (sync - no I/O)."""
        result = Path(base).joinpath(*parts).resolve()

        base_resolved = Path(base).resolve()
        try:
            result.relative_to(base_resolved)
        except ValueError as e:
            raise ValueError(f"Path traversal detected: {result} escapes {base}") from e

        return AbsolutePath(result)

    async def exists(self, path: AbsolutePath) -> bool:
        return bool(await aiofiles.os.path.exists(path))

    async def is_file(self, path: AbsolutePath) -> bool:
        return bool(await aiofiles.os.path.isfile(path))

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str:
        async with aiofiles.open(path, encoding=encoding) as f:
            content: str = await f.read()
            return content

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        """Atomically write text file asynchronously."""
        start = time.perf_counter()
        path_obj = Path(path)

        await aiofiles.os.makedirs(path_obj.parent, exist_ok=True)

        def create_temp_file() -> str:
            tmp = NamedTemporaryFile(
                mode="w",
                encoding=encoding,
                dir=path_obj.parent,
                prefix=f".{path_obj.name}.",
                delete=False,
            )
            tmp_path = tmp.name
            tmp.close()
            return tmp_path

        tmp_path = await asyncio.to_thread(create_temp_file)

        try:
            async with aiofiles.open(tmp_path, mode="w", encoding=encoding) as f:
                await f.write(content)
            await asyncio.to_thread(os.replace, tmp_path, str(path))
        except OSError:
            # The temp file may already be gone; the original error is what matters.
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.unlink(tmp_path)
            raise

        duration = (time.perf_counter() - start) * 1000
        return WriteResult(
            path=str(path),
            bytes_written=len(content.encode(encoding)),
            duration_ms=duration,
        )

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None:
        await aiofiles.os.makedirs(path, exist_ok=exist_ok)

    async def listdir(self, path: AbsolutePath) -> list[str]:
        entries: list[str] = await aiofiles.os.listdir(path)
        return entries

    async def remove(self, path: AbsolutePath) -> None:
        await aiofiles.os.unlink(path)
