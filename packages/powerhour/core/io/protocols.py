"""Protocol for async filesystem operations used by the persistent stores."""

from typing import Protocol

from .models import AbsolutePath, WriteResult


class FileSystem(Protocol):
    """
    Protocol for async filesystem operations.

    Implementations must provide atomic write semantics: a reader never
    observes a partially written document.
    """

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        """
        Safely join path components.

        Raises:
            ValueError: If result escapes base directory
        """
        ...

    async def exists(self, path: AbsolutePath) -> bool:
        """Check if path exists (file or directory)."""
        ...

    async def is_file(self, path: AbsolutePath) -> bool:
        """Check if path exists and is a file."""
        ...

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str:
        """
        Read text file contents.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        ...

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        """
        Atomically write text to file.

        Raises:
            OSError: On write failure (``errno.ENOSPC`` when storage is full)
        """
        ...

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None:
        """Create directory and all parents."""
        ...

    async def listdir(self, path: AbsolutePath) -> list[str]:
        """
        List directory entry names.

        Raises:
            FileNotFoundError: If directory doesn't exist
        """
        ...

    async def remove(self, path: AbsolutePath) -> None:
        """
        Remove a file.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        ...
