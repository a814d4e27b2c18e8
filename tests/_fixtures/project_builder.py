"""Helper utilities for laying out compiled projects in tests."""

from __future__ import annotations

import textwrap
import threading
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from jspublisher.config import PublishConfig
from jspublisher.context import PublishContext, resolve_context
from jspublisher.optimizer import OptimizerRun

LOADER_BASE = "var goog = goog || {};\ngoog.provide = function(name) {};\n"
LOADER_DEPS = (
    "goog.addDependency('base.js', ['goog'], []);\n"
    "goog.addDependency('array/array.js', ['goog.array'], ['goog.asserts']);\n"
    "goog.addDependency('asserts/asserts.js', ['goog.asserts'], []);\n"
)


class ProjectBuilder:
    """Writes a source tree, a debug tree and a loader library under tmp_path."""

    def __init__(self, tmp_path: Path, name: str = "App") -> None:
        self.root = tmp_path.resolve() / "workspace"
        self.name = name
        self.src = self.root / "src"
        self.src.mkdir(parents=True)
        self.target = self.src / f"{name}.as"
        self.target.write_text(f"package {{ public class {name} {{}} }}\n", encoding="utf-8")

    @property
    def debug_root(self) -> Path:
        return self.root / "bin" / "js-debug"

    @property
    def release_root(self) -> Path:
        return self.root / "bin" / "js-release"

    def write(self, files: Mapping[str, str | bytes]) -> None:
        """Write `path -> contents` entries relative to the workspace root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def write_module(self, relative: str, content: str) -> Path:
        """Write a compiled module into the debug tree."""
        self.write({f"bin/js-debug/{relative}": content})
        return self.debug_root / relative

    def loader_library(self, *, deps: Optional[str] = LOADER_DEPS) -> Path:
        """Create a closure/goog library directory and return its parent."""
        lib = self.root / "closure-lib"
        goog = lib / "closure" / "goog"
        goog.mkdir(parents=True, exist_ok=True)
        (goog / "base.js").write_text(LOADER_BASE, encoding="utf-8")
        if deps is not None:
            (goog / "deps.js").write_text(deps, encoding="utf-8")
        return lib

    def config(self, **overrides: object) -> PublishConfig:
        values = {"closure_lib": self.loader_library(), **overrides}
        return PublishConfig(root=self.root).with_overrides(**values)

    def context(self, **overrides: object) -> PublishContext:
        return resolve_context(self.config(**overrides), self.target)


class RecordingOptimizerRunner:
    """Optimizer runner double that concatenates inputs into the output file."""

    def __init__(self, returncode: int = 0, diagnostic: str = "", write_output: bool = True) -> None:
        self.returncode = returncode
        self.diagnostic = diagnostic
        self.write_output = write_output
        self.calls: List[List[str]] = []

    def __call__(self, args: Sequence[str], cancel_event: threading.Event | None) -> OptimizerRun:
        args = list(args)
        self.calls.append(args)
        if self.returncode == 0 and self.write_output:
            output = Path(args[args.index("--js_output_file") + 1])
            sources = [Path(args[i + 1]) for i, arg in enumerate(args) if arg == "--js"]
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(
                "".join(source.read_text(encoding="utf-8") for source in sources), encoding="utf-8"
            )
        return OptimizerRun(returncode=self.returncode, diagnostic=self.diagnostic)

    @property
    def last_inputs(self) -> List[str]:
        args = self.calls[-1]
        return [args[i + 1] for i, arg in enumerate(args) if arg == "--js"]


__all__ = ["LOADER_DEPS", "ProjectBuilder", "RecordingOptimizerRunner"]
