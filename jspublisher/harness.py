"""HTML harness and stylesheet emission for the debug and release trees."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from jinja2 import Environment, FileSystemLoader

from .fsutil import write_text
from .logging import get_logger
from .models import StagedFile
from .project import CssSession

HARNESS_FILE_NAME = "index.html"
LOADER_SCRIPT = "library/closure/goog/base.js"
MODES = ("debug", "release")


class HarnessWriter:
    """Renders index.html from templates and writes the project stylesheet."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)
        self.logger = get_logger("harness")

    def render(
        self,
        mode: str,
        project_name: str,
        manifest: str | None = None,
        extra_head_tags: Sequence[str] = (),
    ) -> str:
        if mode not in MODES:
            raise ValueError(f"Unknown harness mode '{mode}'; expected one of {', '.join(MODES)}")
        template = self._env.get_template("index.html.j2")
        return template.render(
            mode=mode,
            project_name=project_name,
            loader_script=LOADER_SCRIPT,
            manifest_lines=[line for line in (manifest or "").splitlines() if line.strip()],
            extra_head_tags=list(extra_head_tags),
        )

    def write_harness(
        self,
        mode: str,
        project_name: str,
        dest_dir: Path,
        manifest: str | None = None,
        extra_head_tags: Sequence[str] = (),
    ) -> Path:
        html = self.render(mode, project_name, manifest, extra_head_tags)
        target = StagedFile(source=None, destination=dest_dir / HARNESS_FILE_NAME, root=dest_dir)
        write_text(target.destination, html)
        self.logger.debug("Wrote %s harness to %s", mode, target.destination)
        return target.destination

    def write_css(self, project_name: str, dest_dir: Path, css_session: CssSession) -> Path:
        target = StagedFile(source=None, destination=dest_dir / f"{project_name}.css", root=dest_dir)
        write_text(target.destination, css_session.emit_stylesheet())
        return target.destination

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(_unique(directories))
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


def _unique(items: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for item in items:
        if item not in seen:
            ordered.append(item)
            seen.add(item)
    return ordered


__all__ = ["HARNESS_FILE_NAME", "HarnessWriter", "LOADER_SCRIPT"]
