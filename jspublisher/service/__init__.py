"""Service mode for running publishes over HTTP."""

from __future__ import annotations

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
