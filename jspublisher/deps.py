"""Module dependency scanning and goog.addDependency manifest generation."""

from __future__ import annotations

import os
import re
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .context import PublishContext
from .errors import DependencyIssue, DependencyResolutionError
from .fsutil import read_text
from .logging import get_logger
from .models import ModuleDependencyRecord

_PROVIDE_PATTERN = re.compile(r"^\s*goog\.provide\(\s*['\"]([\w.$]+)['\"]\s*\)", re.MULTILINE)
_REQUIRE_PATTERN = re.compile(r"^\s*goog\.require\(\s*['\"]([\w.$]+)['\"]\s*\)", re.MULTILINE)
_ADD_DEPENDENCY_PATTERN = re.compile(
    r"goog\.addDependency\(\s*['\"][^'\"]*['\"]\s*,\s*\[([^\]]*)\]"
)
_QUOTED_NAME = re.compile(r"['\"]([^'\"]+)['\"]")
_INJECT_OPEN = "<inject_html>"
_INJECT_CLOSE = "</inject_html>"
_LOADER_NAMESPACE = "goog"


class DependencyGraphWriter:
    """Builds the debug-mode dependency manifest for a set of compiled modules."""

    def __init__(
        self,
        context: PublishContext,
        module_files: Sequence[Path],
        *,
        library_files: Sequence[Path] = (),
        implicit_requires: Mapping[Path, Iterable[str]] | None = None,
    ) -> None:
        self.context = context
        self.module_files = [Path(path) for path in module_files]
        self.library_files = [Path(path) for path in library_files]
        self.implicit_requires = {
            Path(path): set(names) for path, names in (implicit_requires or {}).items()
        }
        self._head_tags: List[str] = []
        self.logger = get_logger("deps")
        self._records: Optional[List[ModuleDependencyRecord]] = None

    @property
    def records(self) -> List[ModuleDependencyRecord]:
        if self._records is None:
            self._records = self._resolve()
        return self._records

    def list_project_files(self) -> List[Path]:
        """Project module paths in dependency order (requirements first)."""
        project = set(self.module_files)
        return [record.path for record in self.records if record.path in project]

    def list_library_files(self) -> List[Path]:
        """Staged library modules (those declaring goog.provide) in dependency order."""
        library = set(self.library_files)
        return [record.path for record in self.records if record.path in library]

    def compute_manifest(self) -> str:
        """Return one goog.addDependency line per module."""
        return "".join(f"{record.line}\n" for record in self.records)

    @property
    def extra_head_tags(self) -> List[str]:
        """HTML fragments declared in <inject_html> blocks, in discovery order."""
        if self._records is None:
            self._records = self._resolve()
        return list(self._head_tags)

    # ------------------------------------------------------------------
    # Resolution

    def _resolve(self) -> List[ModuleDependencyRecord]:
        scanned: Dict[Path, tuple[Set[str], Set[str]]] = {}
        library = set(self.library_files)
        for path in [*self.library_files, *self.module_files]:
            if path in scanned:
                continue
            text = read_text(path)
            provides = set(_PROVIDE_PATTERN.findall(text))
            if not provides and path in library:
                # Plain scripts shipped with a library (externs, shims) are not loader modules.
                continue
            requires = set(_REQUIRE_PATTERN.findall(text))
            requires |= self.implicit_requires.get(path, set())
            requires -= provides
            scanned[path] = (provides, requires)
            self._collect_head_tags(text)

        issues: List[DependencyIssue] = []
        providers: Dict[str, List[Path]] = defaultdict(list)
        for path, (provides, _) in scanned.items():
            if not provides:
                issues.append(DependencyIssue(self._label(path), "", "module provides no symbols"))
            for symbol in sorted(provides):
                providers[symbol].append(path)

        for symbol, paths in sorted(providers.items()):
            if len(paths) > 1:
                for path in paths:
                    issues.append(
                        DependencyIssue(self._label(path), symbol, "symbol provided by more than one module")
                    )

        known = self._loader_provides()
        for path, (_, requires) in scanned.items():
            for symbol in sorted(requires):
                if symbol in providers or self._is_loader_symbol(symbol, known):
                    continue
                issues.append(DependencyIssue(self._label(path), symbol, "unresolved require"))

        if issues:
            raise DependencyResolutionError(issues)

        ordered = self._order(scanned, providers)
        records: List[ModuleDependencyRecord] = []
        for ordinal, path in enumerate(ordered):
            provides, requires = scanned[path]
            records.append(
                ModuleDependencyRecord(
                    path=path,
                    provides=frozenset(provides),
                    requires=frozenset(requires),
                    line=self._manifest_line(path, provides, requires),
                    ordinal=ordinal,
                )
            )
        self.logger.debug("Resolved %d modules into the dependency manifest", len(records))
        return records

    def _order(
        self,
        scanned: Mapping[Path, tuple[Set[str], Set[str]]],
        providers: Mapping[str, List[Path]],
    ) -> List[Path]:
        ordered: List[Path] = []
        done: Set[Path] = set()
        visiting: Set[Path] = set()

        def visit(path: Path) -> None:
            if path in done or path in visiting:
                # The loader tolerates cycles; the back edge is dropped here.
                return
            visiting.add(path)
            for symbol in sorted(scanned[path][1]):
                for provider in providers.get(symbol, []):
                    visit(provider)
            visiting.discard(path)
            done.add(path)
            ordered.append(path)

        for path in sorted(scanned):
            visit(path)
        return ordered

    def _manifest_line(self, path: Path, provides: Set[str], requires: Set[str]) -> str:
        relative = Path(os.path.relpath(path, self.context.debug_library_dir)).as_posix()
        provided = ", ".join(f"'{name}'" for name in sorted(provides))
        required = ", ".join(f"'{name}'" for name in sorted(requires))
        return f"goog.addDependency('{relative}', [{provided}], [{required}]);"

    def _loader_provides(self) -> Optional[Set[str]]:
        deps_file = self.context.loader_library_dir / "deps.js"
        if not deps_file.is_file():
            return None
        known: Set[str] = {_LOADER_NAMESPACE}
        for match in _ADD_DEPENDENCY_PATTERN.finditer(read_text(deps_file)):
            known.update(_QUOTED_NAME.findall(match.group(1)))
        return known

    @staticmethod
    def _is_loader_symbol(symbol: str, known: Optional[Set[str]]) -> bool:
        if known is not None:
            return symbol in known
        return symbol == _LOADER_NAMESPACE or symbol.startswith(f"{_LOADER_NAMESPACE}.")

    def _collect_head_tags(self, text: str) -> None:
        collecting = False
        for raw in text.splitlines():
            line = raw.strip()
            if _INJECT_OPEN in line:
                collecting = True
                continue
            if _INJECT_CLOSE in line:
                collecting = False
                continue
            if not collecting:
                continue
            tag = line.lstrip("*").strip()
            if tag and tag not in self._head_tags:
                self._head_tags.append(tag)

    def _label(self, path: Path) -> str:
        try:
            return path.relative_to(self.context.debug_root).as_posix()
        except ValueError:
            return path.as_posix()


__all__ = ["DependencyGraphWriter"]
