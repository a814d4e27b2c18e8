"""Core data models shared across publish stages."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Tuple

from .errors import FilesystemError


@dataclass(frozen=True)
class ModuleDependencyRecord:
    """Provides/requires facts for one compiled module plus its manifest line."""

    path: Path
    provides: FrozenSet[str]
    requires: FrozenSet[str]
    line: str = ""
    ordinal: int = -1


@dataclass(frozen=True)
class StagedFile:
    """A copy or generation operation whose destination must stay under `root`."""

    source: Path | None
    destination: Path
    root: Path

    def __post_init__(self) -> None:
        root = Path(os.path.abspath(self.root))
        destination = Path(os.path.abspath(self.destination))
        if destination != root and root not in destination.parents:
            raise FilesystemError(
                f"Refusing to stage {self.destination}: destination escapes {self.root}"
            )


@dataclass(frozen=True)
class OptimizerJob:
    """Immutable description of one optimizer invocation."""

    inputs: Tuple[Path, ...]
    externs: Tuple[Path, ...]
    output: Path
    strict: bool
    entry_point: str
    source_map: Path


@dataclass(frozen=True)
class MaterializeResult:
    """Outcome of extracting a runtime resource into the cache."""

    destination: Path
    extracted: bool
    entries: int = 0


__all__ = ["MaterializeResult", "ModuleDependencyRecord", "OptimizerJob", "StagedFile"]
