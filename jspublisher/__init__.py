"""Publish compiled JS modules into debug and release web artifacts."""

from __future__ import annotations

from .config import ConfigError, PublishConfig, load_config
from .context import PublishContext, resolve_context
from .errors import (
    DependencyResolutionError,
    FilesystemError,
    OptimizationError,
    PublishCancelledError,
    PublishError,
    ResourceMaterializationError,
)
from .orchestrator import Orchestrator, PublishResult, PublishState

__all__ = [
    "ConfigError",
    "DependencyResolutionError",
    "FilesystemError",
    "OptimizationError",
    "Orchestrator",
    "PublishCancelledError",
    "PublishConfig",
    "PublishContext",
    "PublishError",
    "PublishResult",
    "PublishState",
    "ResourceMaterializationError",
    "load_config",
    "resolve_context",
]
