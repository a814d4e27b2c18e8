"""Extraction of bundled runtime libraries into the on-disk cache."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import FilesystemError, ResourceMaterializationError
from .logging import get_logger
from .models import MaterializeResult, StagedFile

_ARCHIVE_SUFFIXES = {".zip", ".jar"}


@dataclass(frozen=True)
class RuntimeResource:
    """A runtime library identified by a marker file inside its container."""

    name: str
    marker: str
    root: str = ""


LOADER_RESOURCE = RuntimeResource(name="closure", marker="closure/goog/deps.js", root="closure")
SUPPORT_RESOURCE = RuntimeResource(name="support", marker="support/src/externals.js", root="support")


@dataclass(frozen=True)
class ResourceLocation:
    """Container that holds a resource: an archive or a loose directory."""

    container: Path
    is_archive: bool


def default_lookup_path(extra: Iterable[Path] = ()) -> Tuple[Path, ...]:
    """Configured entries first, then interpreter path entries."""
    entries: List[Path] = [Path(item) for item in extra]
    for item in sys.path:
        if item:
            entries.append(Path(item))
    return tuple(entries)


class ResourceMaterializer:
    """Extracts runtime resources once per destination, atomically."""

    def __init__(self, lookup_path: Sequence[Path] | None = None) -> None:
        self.lookup_path = tuple(lookup_path) if lookup_path is not None else default_lookup_path()
        self.logger = get_logger("resources")

    def locate(self, resource: RuntimeResource) -> Optional[ResourceLocation]:
        marker = resource.marker
        for entry in self.lookup_path:
            if entry.is_dir():
                if (entry / marker).is_file():
                    return ResourceLocation(container=entry, is_archive=False)
            elif entry.suffix.lower() in _ARCHIVE_SUFFIXES and entry.is_file():
                if _archive_contains(entry, marker):
                    return ResourceLocation(container=entry, is_archive=True)
        return None

    def materialize(self, resource: RuntimeResource, destination: Path) -> MaterializeResult:
        """Extract `resource` into `destination` unless it already exists."""
        if destination.exists():
            self.logger.debug("Runtime resource %s already cached at %s", resource.name, destination)
            return MaterializeResult(destination=destination, extracted=False)

        location = self.locate(resource)
        if location is None:
            raise ResourceMaterializationError(
                f"Runtime resource '{resource.name}' ({resource.marker}) not found on lookup path"
            )

        parent = destination.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}-", dir=parent))
        except OSError as exc:
            raise FilesystemError(f"Unable to create directory for {destination}: {exc}") from exc

        try:
            if location.is_archive:
                count = self._extract_archive(location.container, resource.root, staging)
            else:
                count = self._copy_directory(location.container, resource.root, staging)
            os.replace(staging, destination)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise FilesystemError(f"Unable to extract {resource.name} into {destination}: {exc}") from exc
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        self.logger.info(
            "Extracted %d entries of %s from %s into %s", count, resource.name, location.container, destination
        )
        return MaterializeResult(destination=destination, extracted=True, entries=count)

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _extract_archive(archive_path: Path, root: str, staging: Path) -> int:
        prefix = f"{root.strip('/')}/" if root.strip("/") else ""
        count = 0
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for info in archive.infolist():
                    if info.is_dir() or not info.filename.startswith(prefix):
                        continue
                    relative = info.filename[len(prefix):]
                    if not relative:
                        continue
                    staged = StagedFile(source=None, destination=staging / relative, root=staging)
                    staged.destination.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as src, open(staged.destination, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    count += 1
        except zipfile.BadZipFile as exc:
            raise ResourceMaterializationError(f"Corrupt resource archive {archive_path}: {exc}") from exc
        return count

    @staticmethod
    def _copy_directory(container: Path, root: str, staging: Path) -> int:
        source = container / root if root else container
        count = 0
        for current, dirnames, filenames in os.walk(source):
            dirnames.sort()
            current_path = Path(current)
            for name in sorted(filenames):
                path = current_path / name
                staged = StagedFile(
                    source=path, destination=staging / path.relative_to(source), root=staging
                )
                staged.destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, staged.destination)
                count += 1
        return count


def _archive_contains(archive_path: Path, member: str) -> bool:
    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.getinfo(member)
    except KeyError:
        return False
    except (OSError, zipfile.BadZipFile):
        return False
    return True


__all__ = [
    "LOADER_RESOURCE",
    "ResourceLocation",
    "ResourceMaterializer",
    "RuntimeResource",
    "SUPPORT_RESOURCE",
    "default_lookup_path",
]
