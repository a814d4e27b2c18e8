"""Filesystem helpers that surface OSError as FilesystemError."""

from __future__ import annotations

import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple

from .errors import FilesystemError
from .logging import get_logger
from .models import StagedFile

_LOGGER = get_logger("fs")


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Unable to read {path}: {exc}") from exc


def write_text(path: Path, content: str, *, append: bool = False) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a" if append else "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
    except OSError as exc:
        raise FilesystemError(f"Unable to write {path}: {exc}") from exc


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Unable to create directory {path}: {exc}") from exc
    return path


def remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise FilesystemError(f"Unable to delete {path}: {exc}") from exc


def walk_tree(root: Path, *, exclude: Sequence[Path] = ()) -> Iterator[Tuple[Path, List[Path]]]:
    """Yield (directory, files) pairs top-down in sorted order, skipping excluded subtrees."""
    excluded = {Path(os.path.abspath(item)) for item in exclude}

    def _raise(exc: OSError) -> None:
        raise FilesystemError(f"Unable to read {exc.filename}: {exc}") from exc

    for current, dirnames, filenames in os.walk(root, onerror=_raise):
        current_path = Path(current)
        dirnames[:] = sorted(
            name for name in dirnames if Path(os.path.abspath(current_path / name)) not in excluded
        )
        yield current_path, [current_path / name for name in sorted(filenames)]


def iter_files(root: Path, *, suffixes: Iterable[str] | None = None, exclude: Sequence[Path] = ()) -> Iterator[Path]:
    """Yield files under root in sorted order, skipping excluded subtrees."""
    wanted = {suffix.lower() for suffix in suffixes} if suffixes is not None else None
    for _, files in walk_tree(root, exclude=exclude):
        for path in files:
            if wanted is not None and path.suffix.lower() not in wanted:
                continue
            yield path


def copy_file(staged: StagedFile) -> StagedFile:
    if staged.source is None:
        raise FilesystemError(f"Nothing to copy into {staged.destination}")
    try:
        staged.destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(staged.source, staged.destination)
    except OSError as exc:
        raise FilesystemError(
            f"Unable to copy {staged.source} to {staged.destination}: {exc}"
        ) from exc
    return staged


def run_copies(staged: Sequence[StagedFile], *, workers: int) -> List[StagedFile]:
    """Copy staged files on a thread pool; destinations are disjoint."""
    if not staged:
        return []
    if workers <= 1 or len(staged) == 1:
        return [copy_file(item) for item in staged]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(copy_file, staged))


def copy_tree(
    source: Path,
    destination: Path,
    *,
    workers: int = 1,
) -> List[StagedFile]:
    """Mirror a directory tree into destination, overwriting files in place."""
    if not source.is_dir():
        raise FilesystemError(f"Source directory does not exist: {source}")
    staged: List[StagedFile] = []
    for path in iter_files(source):
        relative = path.relative_to(source)
        staged.append(StagedFile(source=path, destination=destination / relative, root=destination))
    ensure_dir(destination)
    copied = run_copies(staged, workers=workers)
    _LOGGER.debug("Copied %d files from %s to %s", len(copied), source, destination)
    return copied


__all__ = [
    "copy_file",
    "copy_tree",
    "ensure_dir",
    "iter_files",
    "read_text",
    "remove_tree",
    "run_copies",
    "walk_tree",
    "write_text",
]
