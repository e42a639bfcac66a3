"""Ordered resolver chain for locating a mix's files.

Mixes are normally stored as ``{id}.json``/``{id}.wav``, but older or
hand-copied files may be keyed by name, differ in case, or carry a
different file name entirely. Each strategy tries one of those
explanations; the chain returns the first hit.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from powerhour.core.io.utils import sanitize_path_component
from powerhour.core.mixes.models import MixRef
from powerhour.core.utils.formatting import safe_file_stem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedMix:
    json_path: Path
    wav_path: Path | None
    strategy: str


class MixResolver(Protocol):
    name: str

    def resolve(self, folder: Path, ref: MixRef) -> ResolvedMix | None: ...


def candidate_stems(ref: MixRef) -> list[str]:
    """File stems a mix may be stored under, most specific first."""
    stems: list[str] = []
    if ref.id:
        stems.append(sanitize_path_component(ref.id))
    if ref.name:
        stems += [ref.name, safe_file_stem(ref.name)]
    return list(dict.fromkeys(s for s in stems if s and Path(s).name == s))


def _companion_wav(json_path: Path) -> Path | None:
    """The WAV next to a JSON sidecar, matching the stem case-insensitively."""
    exact = json_path.with_suffix(".wav")
    if exact.is_file():
        return exact
    stem = json_path.stem.casefold()
    for candidate in json_path.parent.glob("*"):
        if candidate.suffix.lower() == ".wav" and candidate.stem.casefold() == stem:
            return candidate
    return None


class ByExactPath:
    name = "exact_path"

    def resolve(self, folder: Path, ref: MixRef) -> ResolvedMix | None:
        for stem in candidate_stems(ref):
            json_path = folder / f"{stem}.json"
            if json_path.is_file():
                return ResolvedMix(json_path, _companion_wav(json_path), self.name)
        return None


class ByCaseInsensitiveName:
    name = "case_insensitive_name"

    def resolve(self, folder: Path, ref: MixRef) -> ResolvedMix | None:
        wanted = {stem.casefold() for stem in candidate_stems(ref)}
        for json_path in sorted(folder.glob("*")):
            if json_path.suffix.lower() == ".json" and json_path.stem.casefold() in wanted:
                return ResolvedMix(json_path, _companion_wav(json_path), self.name)
        return None


class ByContentScan:
    """Opens every JSON file and matches its ``id`` or ``name`` field."""

    name = "content_scan"

    def resolve(self, folder: Path, ref: MixRef) -> ResolvedMix | None:
        for json_path in sorted(folder.glob("*.json")):
            try:
                data = json.loads(json_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.debug("Skipping unreadable mix file %s: %s", json_path.name, e)
                continue
            if not isinstance(data, dict):
                continue
            if (ref.id and data.get("id") == ref.id) or (ref.name and data.get("name") == ref.name):
                return ResolvedMix(json_path, _companion_wav(json_path), self.name)
        return None


class ResolverChain:
    """Tries each resolver in order and returns the first hit."""

    def __init__(self, resolvers: Sequence[MixResolver]) -> None:
        self.resolvers = list(resolvers)

    def resolve(self, folder: Path, ref: MixRef) -> ResolvedMix | None:
        if not folder.is_dir():
            return None
        for resolver in self.resolvers:
            hit = resolver.resolve(folder, ref)
            if hit is not None:
                if resolver is not self.resolvers[0]:
                    logger.info("Located mix %s via %s fallback: %s", ref, hit.strategy, hit.json_path.name)
                return hit
        return None


def default_mix_resolver() -> ResolverChain:
    return ResolverChain([ByExactPath(), ByCaseInsensitiveName(), ByContentScan()])
