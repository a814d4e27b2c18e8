"""Immutable per-run publish context and output path resolution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import DEFAULT_OPTIMIZER_COMMAND, DEFAULT_SUPPORT_QNAME, DEFAULT_WORKERS, ConfigError, PublishConfig

OUTPUT_DIR_NAME = "bin"
DEBUG_DIR_NAME = "js-debug"
RELEASE_DIR_NAME = "js-release"
LOADER_CACHE_NAME = "closure"
SUPPORT_CACHE_NAME = "support"
OUTPUT_EXTENSION = "js"


@dataclass(frozen=True)
class PublishContext:
    """Everything a publish run needs to know, resolved once up front."""

    project_name: str
    source_root: Path
    output_parent: Path
    debug_root: Path
    release_root: Path
    cache_root: Path
    library_root: Optional[Path] = None
    strict: bool = False
    externs: Tuple[Path, ...] = ()
    redirect: bool = False
    resource_path: Tuple[Path, ...] = ()
    support_qname: str = DEFAULT_SUPPORT_QNAME
    optimizer_command: Tuple[str, ...] = DEFAULT_OPTIMIZER_COMMAND
    workers: int = DEFAULT_WORKERS

    @property
    def output_file_name(self) -> str:
        return f"{self.project_name}.{OUTPUT_EXTENSION}"

    @property
    def debug_entry_path(self) -> Path:
        return self.debug_root / self.output_file_name

    @property
    def release_bundle_path(self) -> Path:
        return self.release_root / self.output_file_name

    @property
    def loader_cache_dir(self) -> Path:
        return self.cache_root / LOADER_CACHE_NAME

    @property
    def support_cache_dir(self) -> Path:
        return self.cache_root / SUPPORT_CACHE_NAME

    @property
    def loader_library_dir(self) -> Path:
        """Directory holding goog/base.js and goog/deps.js for this run."""
        if self.library_root is not None:
            return self.library_root / "closure" / "goog"
        return self.loader_cache_dir / "goog"

    @property
    def debug_library_dir(self) -> Path:
        return self.debug_root / "library" / "closure" / "goog"

    @property
    def debug_support_dir(self) -> Path:
        return self.debug_root / "library" / SUPPORT_CACHE_NAME


def resolve_context(config: PublishConfig, target_file: Path) -> PublishContext:
    """Build the run context from validated config and the compiled target file."""
    target = Path(target_file).expanduser().resolve()
    if not target.is_file():
        raise ConfigError(f"Target file not found: {target}")

    source_root = target.parent
    redirect = config.redirect_output is not None
    if config.redirect_output is not None:
        parent = config.redirect_output
    elif config.output is not None:
        parent = config.output
        # An output that names a file (e.g. <project>/bin-release/app.swf) points two levels up.
        if parent.suffix:
            parent = parent.parent.parent
    else:
        parent = source_root.parent

    output_parent = parent / OUTPUT_DIR_NAME
    return PublishContext(
        project_name=target.stem,
        source_root=source_root,
        output_parent=output_parent,
        debug_root=output_parent / DEBUG_DIR_NAME,
        release_root=output_parent / RELEASE_DIR_NAME,
        cache_root=output_parent,
        library_root=config.closure_lib,
        strict=config.strict_publish,
        externs=tuple(config.external_js_lib),
        redirect=redirect,
        resource_path=tuple(config.resource_path),
        support_qname=config.support_qname,
        optimizer_command=tuple(config.optimizer.command) + tuple(config.optimizer.extra_args),
        workers=config.workers,
    )


__all__ = [
    "DEBUG_DIR_NAME",
    "OUTPUT_DIR_NAME",
    "PublishContext",
    "RELEASE_DIR_NAME",
    "resolve_context",
]
