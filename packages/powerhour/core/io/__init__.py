"""Filesystem abstraction layer for the Power Hour stores.

Async-first, atomic-write filesystem access with an in-memory fake for tests.

Example:
    >>> from powerhour.core.io import RealFileSystem, absolute_path
    >>> fs = RealFileSystem()
    >>> path = fs.join(absolute_path("/tmp"), "library_cache", "libraries.json")
    >>> await fs.write_text(path, "{}")
"""

from .impl_fake import FakeFileSystem
from .impl_real import RealFileSystem
from .models import AbsolutePath, WriteResult, absolute_path
from .protocols import FileSystem
from .utils import is_safe_path_component, sanitize_path_component

__all__ = [
    "AbsolutePath",
    "absolute_path",
    "WriteResult",
    "FileSystem",
    "RealFileSystem",
    "FakeFileSystem",
    "sanitize_path_component",
    "is_safe_path_component",
]
