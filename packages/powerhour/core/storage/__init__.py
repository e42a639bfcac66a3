"""Local storage layout."""

from powerhour.core.storage.layout import StorageLayout

__all__ = ["StorageLayout"]
