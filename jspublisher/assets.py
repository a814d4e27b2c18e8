"""Mirrors non-code project assets into the output trees."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, List, Sequence

from .errors import FilesystemError
from .fsutil import ensure_dir, run_copies, walk_tree
from .logging import get_logger
from .models import StagedFile

ASSET_SUFFIXES: FrozenSet[str] = frozenset({".png", ".gif", ".jpg", ".json"})


class AssetMirror:
    """Copies images and JSON data from the source tree, keeping relative paths."""

    def __init__(self, *, workers: int = 4, suffixes: FrozenSet[str] = ASSET_SUFFIXES) -> None:
        self.workers = workers
        self.suffixes = suffixes
        self.logger = get_logger("assets")

    def is_asset(self, path: Path) -> bool:
        # Case-insensitive: exports from Windows tooling carry upper-case suffixes.
        return path.suffix.lower() in self.suffixes

    def mirror(self, source_root: Path, dest_roots: Sequence[Path]) -> List[StagedFile]:
        if not source_root.is_dir():
            raise FilesystemError(f"Source directory does not exist: {source_root}")

        staged: List[StagedFile] = []
        # Output trees may live inside the source tree; never walk into them.
        for directory, files in walk_tree(source_root, exclude=dest_roots):
            relative = directory.relative_to(source_root)
            for dest_root in dest_roots:
                target = StagedFile(source=None, destination=dest_root / relative, root=dest_root)
                ensure_dir(target.destination)
            for path in files:
                if not self.is_asset(path):
                    continue
                for dest_root in dest_roots:
                    staged.append(
                        StagedFile(source=path, destination=dest_root / relative / path.name, root=dest_root)
                    )

        copied = run_copies(staged, workers=self.workers)
        self.logger.info("Mirrored %d asset copies into %d output trees", len(copied), len(dest_roots))
        return copied


__all__ = ["ASSET_SUFFIXES", "AssetMirror"]
