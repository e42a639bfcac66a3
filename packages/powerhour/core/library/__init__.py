"""Library scanning and persistence."""

from powerhour.core.library.ids import legacy_library_id, library_display_name, library_id
from powerhour.core.library.models import AssetRecord, CacheStats, LibraryCacheRecord, LibrarySettings
from powerhour.core.library.scanner import LibraryScanner, ScanProgress, ScanToken
from powerhour.core.library.store import LibraryStore

__all__ = [
    "AssetRecord",
    "CacheStats",
    "LibraryCacheRecord",
    "LibraryScanner",
    "LibrarySettings",
    "LibraryStore",
    "ScanProgress",
    "ScanToken",
    "legacy_library_id",
    "library_display_name",
    "library_id",
]
