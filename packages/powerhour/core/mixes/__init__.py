"""Mix composition and storage."""

from powerhour.core.mixes.compositor import FFmpegExporter, MixCompositor, MixRenderResult
from powerhour.core.mixes.models import Mix, MixRef, PlaylistOrigin, SourceProjectData
from powerhour.core.mixes.resolver import (
    ByCaseInsensitiveName,
    ByContentScan,
    ByExactPath,
    ResolvedMix,
    ResolverChain,
    default_mix_resolver,
)
from powerhour.core.mixes.store import MixStore, OriginalFile

__all__ = [
    "ByCaseInsensitiveName",
    "ByContentScan",
    "ByExactPath",
    "FFmpegExporter",
    "Mix",
    "MixCompositor",
    "MixRef",
    "MixRenderResult",
    "MixStore",
    "OriginalFile",
    "PlaylistOrigin",
    "ResolvedMix",
    "ResolverChain",
    "SourceProjectData",
    "default_mix_resolver",
]
