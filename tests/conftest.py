from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.project_builder import ProjectBuilder, RecordingOptimizerRunner


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a workspace with a target file named App under src/."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def optimizer_runner() -> RecordingOptimizerRunner:
    return RecordingOptimizerRunner()
