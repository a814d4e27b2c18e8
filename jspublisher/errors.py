"""Error taxonomy for publish runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


class PublishError(RuntimeError):
    """Base class for failures that abort a publish run."""


class FilesystemError(PublishError):
    """Raised when a directory cannot be created or a file cannot be copied or written."""


class ResourceMaterializationError(PublishError):
    """Raised when a bundled runtime resource is missing or corrupt."""


@dataclass
class DependencyIssue:
    """Single problem found while resolving the module graph."""

    module: str
    symbol: str
    message: str

    def __str__(self) -> str:
        return f"{self.module}: {self.message} ({self.symbol})"


class DependencyResolutionError(PublishError):
    """Raised for duplicate provides, missing provides or unresolved requires."""

    def __init__(self, issues: Iterable[DependencyIssue]) -> None:
        self.issues: List[DependencyIssue] = list(issues)
        summary = "; ".join(str(issue) for issue in self.issues) or "unknown dependency problem"
        super().__init__(f"Dependency resolution failed: {summary}")

    @property
    def modules(self) -> List[str]:
        seen: List[str] = []
        for issue in self.issues:
            if issue.module not in seen:
                seen.append(issue.module)
        return seen


class OptimizationError(PublishError):
    """Raised when the external optimizer fails; diagnostic text is kept verbatim."""

    def __init__(self, message: str, *, diagnostic: str = "", returncode: int | None = None) -> None:
        self.diagnostic = diagnostic
        self.returncode = returncode
        text = message
        if diagnostic:
            text = f"{message}\n{diagnostic}"
        super().__init__(text)


class PublishCancelledError(OptimizationError):
    """Raised when a run is aborted through its cancellation signal."""


__all__ = [
    "DependencyIssue",
    "DependencyResolutionError",
    "FilesystemError",
    "OptimizationError",
    "PublishCancelledError",
    "PublishError",
    "ResourceMaterializationError",
]
