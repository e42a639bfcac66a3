"""Application configuration models and loaders."""

from powerhour.core.config.loader import detect_format, load_app_config, load_config
from powerhour.core.config.models import (
    AppConfig,
    AudioConfig,
    ExportConfig,
    LibraryDefaults,
    LoggingConfig,
    ScanConfig,
    StorageConfig,
)

__all__ = [
    "AppConfig",
    "AudioConfig",
    "ExportConfig",
    "LibraryDefaults",
    "LoggingConfig",
    "ScanConfig",
    "StorageConfig",
    "detect_format",
    "load_app_config",
    "load_config",
]
