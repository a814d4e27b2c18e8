"""Tests for the FastAPI service mode."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from jspublisher.config import PublishConfig
from jspublisher.errors import DependencyIssue, DependencyResolutionError
from jspublisher.orchestrator import PublishResult, PublishState
from jspublisher.service import create_app


class _StubOrchestrator:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[Path, PublishConfig]] = []

    def run(self, target: Path, config: PublishConfig) -> PublishResult:
        self.calls.append((target, config))
        if self.fail:
            error = DependencyResolutionError([DependencyIssue("App.js", "app.Missing", "unresolved require")])
            states = [PublishState.INIT, PublishState.COMPUTING_DEPENDENCIES, PublishState.FAILED]
        else:
            error = None
            states = [PublishState.INIT, PublishState.DONE]
        return PublishResult(
            success=not self.fail,
            state=states[-1],
            states=states,
            debug_root=target.parent / "bin" / "js-debug",
            release_root=target.parent / "bin" / "js-release",
            error=error,
        )


def _client(orchestrator: _StubOrchestrator) -> TestClient:
    return TestClient(create_app(lambda: orchestrator))  # type: ignore[arg-type, return-value]


def test_health_endpoint() -> None:
    response = _client(_StubOrchestrator()).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_publish_endpoint_applies_overrides(tmp_path: Path) -> None:
    target = tmp_path / "App.as"
    target.write_text("", encoding="utf-8")
    orchestrator = _StubOrchestrator()

    response = _client(orchestrator).post(
        "/publish",
        json={"target": str(target), "strict_publish": True, "external_js_lib": ["externs/maps.js"]},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["states"] == ["init", "done"]
    assert payload["diagnostic"] is None
    _, config = orchestrator.calls[0]
    assert config.strict_publish is True
    assert config.external_js_lib == (Path("externs/maps.js").resolve(),)


def test_publish_failure_returns_diagnostic(tmp_path: Path) -> None:
    target = tmp_path / "App.as"
    target.write_text("", encoding="utf-8")

    response = _client(_StubOrchestrator(fail=True)).post("/publish", json={"target": str(target)})

    assert response.status_code == 422
    payload = response.json()
    assert payload["status"] == "failed"
    assert "unresolved require" in payload["diagnostic"]


def test_config_errors_map_to_bad_request(tmp_path: Path) -> None:
    (tmp_path / ".jspublish.yml").write_text("workers: 0\n", encoding="utf-8")
    target = tmp_path / "App.as"
    target.write_text("", encoding="utf-8")

    response = _client(_StubOrchestrator()).post("/publish", json={"target": str(target)})

    assert response.status_code == 400
    assert "workers" in response.json()["detail"]


class _SlowOrchestrator(_StubOrchestrator):
    def __init__(self) -> None:
        super().__init__()
        self._guard = threading.Lock()
        self.active = 0
        self.max_active = 0

    def run(self, target: Path, config: PublishConfig) -> PublishResult:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.2)
        with self._guard:
            self.active -= 1
        return super().run(target, config)


def test_publishes_to_the_same_output_root_are_serialised(tmp_path: Path) -> None:
    target = tmp_path / "src" / "App.as"
    target.parent.mkdir()
    target.write_text("", encoding="utf-8")
    orchestrator = _SlowOrchestrator()
    client = _client(orchestrator)
    codes: list[int] = []

    def _post() -> None:
        codes.append(client.post("/publish", json={"target": str(target)}).status_code)

    threads = [threading.Thread(target=_post) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert codes == [200, 200]
    assert len(orchestrator.calls) == 2
    assert orchestrator.max_active == 1
