"""Pipeline orchestration for the publish run."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .assets import AssetMirror
from .config import PublishConfig
from .context import PublishContext, resolve_context
from .deps import DependencyGraphWriter
from .errors import FilesystemError, PublishCancelledError, PublishError, ResourceMaterializationError
from .fsutil import copy_tree, ensure_dir, iter_files, remove_tree
from .harness import HarnessWriter
from .logging import get_logger
from .optimizer import OptimizerInvoker, OptimizerRunner
from .postproc.patcher import SourcePatcher, stylesheet_requires
from .project import CompiledProject, FileSystemProject
from .resources import LOADER_RESOURCE, SUPPORT_RESOURCE, ResourceMaterializer, default_lookup_path


class PublishState(str, Enum):
    """Stages of a publish run; FAILED is reachable from any of them."""

    INIT = "init"
    STAGING_RUNTIME = "staging_runtime"
    COMPUTING_DEPENDENCIES = "computing_dependencies"
    PATCHING_SOURCES = "patching_sources"
    ASSEMBLING_DEBUG = "assembling_debug"
    OPTIMIZING = "optimizing"
    ASSEMBLING_RELEASE = "assembling_release"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PublishResult:
    """Outcome of a publish run."""

    success: bool
    state: PublishState
    states: List[PublishState]
    debug_root: Path
    release_root: Path
    error: Optional[PublishError] = None

    @property
    def failed_stage(self) -> Optional[PublishState]:
        """Stage that was running when the run failed."""
        if self.success or len(self.states) < 2:
            return None
        return self.states[-2]

    @property
    def diagnostic(self) -> str:
        if self.error is None:
            return ""
        return str(self.error)


@dataclass
class _RuntimeLibraries:
    loader_dir: Path
    loader_files: List[Path]
    support_files: List[Path] = field(default_factory=list)


@dataclass
class _Dependencies:
    writer: DependencyGraphWriter
    manifest: str
    head_tags: List[str]
    needs_support: bool


class Orchestrator:
    """Sequences staging, dependency resolution, patching, assembly and optimization."""

    def __init__(
        self,
        materializer: ResourceMaterializer | None = None,
        patcher: SourcePatcher | None = None,
        mirror: AssetMirror | None = None,
        harness: HarnessWriter | None = None,
        optimizer: OptimizerInvoker | None = None,
        optimizer_runner: OptimizerRunner | None = None,
    ) -> None:
        self.materializer = materializer
        self.patcher = patcher or SourcePatcher()
        self.mirror = mirror
        self.harness = harness or HarnessWriter()
        self.optimizer = optimizer
        self._optimizer_runner = optimizer_runner
        self.logger = get_logger("orchestrator")

    def run(
        self,
        target_file: Path,
        config: PublishConfig,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PublishResult:
        """Resolve the context for a target file and publish its filesystem project."""
        context = resolve_context(config, target_file)
        project = FileSystemProject(
            Path(target_file).expanduser().resolve(), support_qname=context.support_qname
        )
        return self.publish(context, project, cancel_event=cancel_event)

    def publish(
        self,
        context: PublishContext,
        project: CompiledProject,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PublishResult:
        states: List[PublishState] = []

        def enter(state: PublishState) -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise PublishCancelledError(f"Publish cancelled before {state.value}")
            states.append(state)
            self.logger.info("Publishing %s: %s", context.project_name, state.value)

        self.logger.info(
            "Starting publish of %s (debug=%s, release=%s)",
            context.project_name,
            context.debug_root,
            context.release_root,
        )
        try:
            enter(PublishState.INIT)
            self._prepare_output(context)

            enter(PublishState.STAGING_RUNTIME)
            runtime = self._stage_runtime(context)

            enter(PublishState.COMPUTING_DEPENDENCIES)
            dependencies = self._compute_dependencies(context, project, runtime)

            enter(PublishState.PATCHING_SOURCES)
            self._patch_sources(context, project, dependencies)

            enter(PublishState.ASSEMBLING_DEBUG)
            self._assemble_debug(context, project, dependencies)

            enter(PublishState.OPTIMIZING)
            self._optimize(context, runtime, dependencies, cancel_event)

            enter(PublishState.ASSEMBLING_RELEASE)
            self._assemble_release(context, project, dependencies)
        except PublishError as exc:
            states.append(PublishState.FAILED)
            self._log_exception(f"Publish of {context.project_name} failed", exc)
            return PublishResult(
                success=False,
                state=PublishState.FAILED,
                states=states,
                debug_root=context.debug_root,
                release_root=context.release_root,
                error=exc,
            )
        except Exception:
            states.append(PublishState.FAILED)
            self.logger.error("Publish of %s aborted by an unexpected error", context.project_name)
            raise

        states.append(PublishState.DONE)
        self.logger.info(
            "The project '%s' has been successfully compiled and optimized.", context.project_name
        )
        return PublishResult(
            success=True,
            state=PublishState.DONE,
            states=states,
            debug_root=context.debug_root,
            release_root=context.release_root,
        )

    # ------------------------------------------------------------------
    # Stages

    def _prepare_output(self, context: PublishContext) -> None:
        if context.redirect:
            self.logger.debug("Redirect mode: leaving %s as managed by the caller", context.release_root)
        else:
            remove_tree(context.release_root)
        ensure_dir(context.release_root)
        ensure_dir(context.debug_root)

    def _stage_runtime(self, context: PublishContext) -> _RuntimeLibraries:
        materializer = self._resolve_materializer(context)
        if context.library_root is None:
            materializer.materialize(LOADER_RESOURCE, context.loader_cache_dir)
        loader_dir = context.loader_library_dir
        if not loader_dir.is_dir():
            raise ResourceMaterializationError(f"Loader library not found at {loader_dir}")

        copy_tree(loader_dir, context.debug_library_dir, workers=context.workers)
        runtime = _RuntimeLibraries(
            loader_dir=loader_dir,
            loader_files=list(iter_files(loader_dir, suffixes={".js"})),
        )

        if context.support_cache_dir.exists() or materializer.locate(SUPPORT_RESOURCE) is not None:
            materializer.materialize(SUPPORT_RESOURCE, context.support_cache_dir)
            copy_tree(context.support_cache_dir, context.debug_support_dir, workers=context.workers)
            runtime.support_files = list(iter_files(context.debug_support_dir, suffixes={".js"}))
        else:
            self.logger.debug("Runtime-support library not found on lookup path; skipping")
        return runtime

    def _compute_dependencies(
        self,
        context: PublishContext,
        project: CompiledProject,
        runtime: _RuntimeLibraries,
    ) -> _Dependencies:
        modules = project.compiled_module_files(context.debug_root)
        entry = context.debug_entry_path
        if entry not in modules:
            raise FilesystemError(f"Entry module not found at {entry}")

        needs_support = project.needs_support_library
        # Requires spliced in by the CSS patch and the support import must already be in the graph.
        implicit = stylesheet_requires(project.css_session.get_encoded_stylesheet())
        if needs_support:
            implicit.append(context.support_qname)
        writer = DependencyGraphWriter(
            context,
            modules,
            library_files=runtime.support_files,
            implicit_requires={entry: implicit},
        )
        manifest = writer.compute_manifest()
        self.logger.debug("Manifest covers %d modules", len(writer.records))
        return _Dependencies(
            writer=writer,
            manifest=manifest,
            head_tags=writer.extra_head_tags,
            needs_support=needs_support,
        )

    def _patch_sources(
        self,
        context: PublishContext,
        project: CompiledProject,
        dependencies: _Dependencies,
    ) -> None:
        self.patcher.patch(
            context.debug_entry_path,
            project_name=context.project_name,
            encoded_stylesheet=project.css_session.get_encoded_stylesheet(),
            support_qname=context.support_qname if dependencies.needs_support else None,
        )

    def _assemble_debug(
        self,
        context: PublishContext,
        project: CompiledProject,
        dependencies: _Dependencies,
    ) -> None:
        mirror = self.mirror or AssetMirror(workers=context.workers)
        mirror.mirror(context.source_root, [context.debug_root, context.release_root])
        self.harness.write_harness(
            "debug",
            context.project_name,
            context.debug_root,
            dependencies.manifest,
            dependencies.head_tags,
        )
        self.harness.write_css(context.project_name, context.debug_root, project.css_session)

    def _optimize(
        self,
        context: PublishContext,
        runtime: _RuntimeLibraries,
        dependencies: _Dependencies,
        cancel_event: threading.Event | None,
    ) -> Path:
        optimizer = self.optimizer or OptimizerInvoker(context.optimizer_command, runner=self._optimizer_runner)
        job = optimizer.build_job(
            context,
            [*runtime.loader_files, *dependencies.writer.list_library_files()],
            dependencies.writer.list_project_files(),
        )
        return optimizer.invoke(job, cancel_event)

    def _assemble_release(
        self,
        context: PublishContext,
        project: CompiledProject,
        dependencies: _Dependencies,
    ) -> None:
        self.harness.write_harness(
            "release",
            context.project_name,
            context.release_root,
            None,
            dependencies.head_tags,
        )
        self.harness.write_css(context.project_name, context.release_root, project.css_session)

    # ------------------------------------------------------------------
    # Helpers

    def _resolve_materializer(self, context: PublishContext) -> ResourceMaterializer:
        if self.materializer is not None:
            return self.materializer
        return ResourceMaterializer(default_lookup_path(context.resource_path))

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["Orchestrator", "PublishResult", "PublishState"]
