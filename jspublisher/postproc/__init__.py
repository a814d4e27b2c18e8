"""Post-processing of generated sources."""

from __future__ import annotations

from .patcher import SourcePatcher

__all__ = ["SourcePatcher"]
