"""Invocation of the external JS optimizer for the release bundle."""

from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .context import PublishContext
from .errors import OptimizationError, PublishCancelledError
from .fsutil import write_text
from .logging import get_logger
from .models import OptimizerJob

_POLL_INTERVAL = 0.1
_TERMINATE_GRACE = 5.0
_STRICT_ERRORS = ("checkTypes", "missingRequire", "accessControls")


@dataclass
class OptimizerRun:
    """Exit status and combined diagnostic text of one optimizer process."""

    returncode: int
    diagnostic: str = ""


OptimizerRunner = Callable[[Sequence[str], Optional[threading.Event]], OptimizerRun]


class OptimizerInvoker:
    """Builds the optimizer job, runs it once and annotates the bundle."""

    def __init__(self, command: Sequence[str], runner: OptimizerRunner | None = None) -> None:
        self.command = list(command)
        self._runner = runner or self._default_runner
        self.logger = get_logger("optimizer")

    def build_job(
        self,
        context: PublishContext,
        library_files: Sequence[Path],
        project_files: Sequence[Path],
    ) -> OptimizerJob:
        inputs = tuple(Path(path) for path in [*library_files, *project_files])
        output = context.release_bundle_path
        return OptimizerJob(
            inputs=inputs,
            externs=tuple(context.externs),
            output=output,
            strict=context.strict,
            entry_point=context.project_name,
            source_map=output.with_name(f"{output.name}.map"),
        )

    def arguments(self, job: OptimizerJob) -> List[str]:
        args = list(self.command)
        args.extend(["--compilation_level", "ADVANCED_OPTIMIZATIONS"])
        args.extend(["--dependency_mode", "PRUNE"])
        args.extend(["--entry_point", f"goog:{job.entry_point}"])
        args.extend(["--js_output_file", str(job.output)])
        args.extend(["--create_source_map", str(job.source_map)])
        if job.strict:
            for check in _STRICT_ERRORS:
                args.append(f"--jscomp_error={check}")
        else:
            args.extend(["--warning_level", "QUIET"])
        for extern in job.externs:
            args.extend(["--externs", str(extern)])
        for source in job.inputs:
            args.extend(["--js", str(source)])
        return args

    def invoke(self, job: OptimizerJob, cancel_event: threading.Event | None = None) -> Path:
        """Run the optimizer; raise OptimizationError on any unsuccessful completion."""
        self.logger.info(
            "Optimizing %d sources (%d externs) into %s", len(job.inputs), len(job.externs), job.output
        )
        run = self._runner(self.arguments(job), cancel_event)
        if run.returncode != 0:
            raise OptimizationError(
                f"Optimizer exited with status {run.returncode}",
                diagnostic=run.diagnostic,
                returncode=run.returncode,
            )
        if run.diagnostic.strip():
            self.logger.debug("Optimizer output:\n%s", run.diagnostic.rstrip())
        if not job.output.is_file():
            raise OptimizationError(
                f"Optimizer reported success but produced no bundle at {job.output}",
                diagnostic=run.diagnostic,
                returncode=run.returncode,
            )
        self.append_source_map_location(job)
        return job.output

    @staticmethod
    def append_source_map_location(job: OptimizerJob) -> None:
        write_text(job.output, f"\n//# sourceMappingURL=./{job.source_map.name}\n", append=True)

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _default_runner(args: Sequence[str], cancel_event: threading.Event | None) -> OptimizerRun:
        try:
            process = subprocess.Popen(
                list(args),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as exc:
            raise OptimizationError(
                f"Unable to locate optimizer executable '{args[0]}'. Install it or set optimizer.command."
            ) from exc
        except OSError as exc:
            raise OptimizationError(f"Unable to start optimizer '{args[0]}': {exc}") from exc

        # Drain output on a thread so a chatty optimizer cannot fill the pipe while we poll.
        chunks: List[str] = []
        reader = threading.Thread(target=_drain, args=(process, chunks), daemon=True, name="optimizer-output")
        reader.start()
        cancelled: Optional[str] = None
        returncode = 0
        try:
            while True:
                try:
                    returncode = process.wait(timeout=_POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = "Optimizer run cancelled"
                        break
        except KeyboardInterrupt:
            cancelled = "Optimizer run interrupted"
        if cancelled is not None:
            _terminate(process)
        _release_output(process, reader)
        if cancelled is not None:
            raise PublishCancelledError(cancelled, diagnostic="".join(chunks))
        return OptimizerRun(returncode=returncode, diagnostic="".join(chunks))


def _drain(process: subprocess.Popen[str], chunks: List[str]) -> None:
    if process.stdout is None:
        return
    try:
        for line in process.stdout:
            chunks.append(line)
    except (OSError, ValueError):
        # Pipe closed under us after a reader join timed out.
        return


def _release_output(process: subprocess.Popen[str], reader: threading.Thread) -> None:
    reader.join(timeout=_TERMINATE_GRACE)
    if process.stdout is not None:
        process.stdout.close()


def _terminate(process: subprocess.Popen[str]) -> None:
    process.terminate()
    try:
        process.wait(timeout=_TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


__all__ = ["OptimizerInvoker", "OptimizerRun", "OptimizerRunner"]
