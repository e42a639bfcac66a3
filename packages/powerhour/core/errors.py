"""Error taxonomy for the Power Hour core.

Every error carries a human-readable message suitable for showing to the
user. Batch operations catch these per item and keep going; whole-operation
failures propagate to the caller.
"""

from __future__ import annotations


class PowerHourError(Exception):
    """Base class for all Power Hour domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(PowerHourError):
    """Source audio cannot be decoded by the available decoder."""


class InvalidRangeError(PowerHourError):
    """Requested extraction window lies outside the source bounds."""


class InvalidArchiveError(PowerHourError):
    """Archive is not a zip, lacks its manifest or primary JSON, or has the wrong type."""


class NotFoundError(PowerHourError):
    """A referenced mix, clip, playlist, library or asset does not exist."""


class StorageFullError(PowerHourError):
    """A persistent write failed even after evicting old records."""


class ExportError(PowerHourError):
    """The external encoder process failed to produce the requested file."""


class ScanCancelledError(PowerHourError):
    """Raised when a library scan is cancelled through its token.

    Not a failure: callers treat it as an empty, abandoned result.
    """

    def __init__(self, message: str = "Scan cancelled") -> None:
        super().__init__(message)
