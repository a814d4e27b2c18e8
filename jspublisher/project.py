"""Collaborator contracts for the upstream compiler plus a filesystem-backed project."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Protocol

from .fsutil import iter_files, read_text

LIBRARY_DIR_NAME = "library"


class CssSession(Protocol):
    """CSS compilation session owned by the upstream compiler."""

    def get_encoded_stylesheet(self) -> str:
        """Return the cssData array body (closed by `];`), optionally followed by goog.require lines."""

    def emit_stylesheet(self) -> str:
        """Return the plain CSS text written next to index.html."""


class CompiledProject(Protocol):
    """What the publisher needs from the upstream compiler's project object."""

    @property
    def target_file(self) -> Path: ...

    @property
    def needs_support_library(self) -> bool: ...

    @property
    def css_session(self) -> CssSession: ...

    def compiled_module_files(self, debug_root: Path) -> List[Path]: ...


class StylesheetSession:
    """CSS session backed by a plain stylesheet string."""

    def __init__(self, css: str = "", requires: List[str] | None = None) -> None:
        self.css = css
        self.requires = list(requires or [])

    def get_encoded_stylesheet(self) -> str:
        body = f"{json.dumps(self.css)}];" if self.css else "];"
        lines = [body, *(f"goog.require('{name}');" for name in self.requires)]
        return "\n".join(lines) + "\n"

    def emit_stylesheet(self) -> str:
        return self.css


class FileSystemProject:
    """Project whose modules were already emitted into the debug tree."""

    def __init__(
        self, target_file: Path, *, support_qname: str, css_session: CssSession | None = None
    ) -> None:
        self._target_file = Path(target_file)
        self.support_qname = support_qname
        if css_session is None:
            stylesheet = self._target_file.with_suffix(".css")
            css_session = StylesheetSession(read_text(stylesheet) if stylesheet.is_file() else "")
        self._css_session = css_session
        self._needs_support: bool | None = None
        self._modules: List[Path] | None = None

    @property
    def target_file(self) -> Path:
        return self._target_file

    @property
    def css_session(self) -> CssSession:
        return self._css_session

    @property
    def needs_support_library(self) -> bool:
        if self._needs_support is None:
            if self._modules is None:
                raise RuntimeError("compiled_module_files() must run before support detection")
            reference = f"{self.support_qname}."
            self._needs_support = any(reference in read_text(path) for path in self._modules)
        return self._needs_support

    def compiled_module_files(self, debug_root: Path) -> List[Path]:
        if self._modules is None:
            library = debug_root / LIBRARY_DIR_NAME
            self._modules = list(iter_files(debug_root, suffixes={".js"}, exclude=[library]))
        return list(self._modules)


__all__ = ["CompiledProject", "CssSession", "FileSystemProject", "StylesheetSession"]
