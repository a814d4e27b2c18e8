"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from jspublisher import cli
from jspublisher.cli import _build_parser
from jspublisher.errors import OptimizationError
from jspublisher.orchestrator import PublishResult, PublishState


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "publish", "src/App.as"])
    assert args.verbose is True
    assert args.command == "publish"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["publish", "src/App.as", "--verbose"])
    assert args.verbose is True
    assert args.target == "src/App.as"


def test_cli_publish_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        [
            "publish",
            "src/App.as",
            "--output",
            "out",
            "--closure-lib",
            "vendor/closure",
            "--external-js-lib",
            "a.js",
            "--external-js-lib",
            "b.js",
            "--strict-publish",
            "--redirect-output",
            "marmotinni",
            "--optimizer",
            "java -jar closure.jar",
        ]
    )
    assert args.external_js_lib == ["a.js", "b.js"]
    assert args.strict_publish is True
    assert args.redirect_output == "marmotinni"
    assert args.optimizer == "java -jar closure.jar"


def test_cli_strict_publish_defaults_to_config_value() -> None:
    args = _build_parser().parse_args(["publish", "src/App.as"])
    assert args.strict_publish is None
    assert args.verbose is False


def test_cli_serve_options() -> None:
    args = _build_parser().parse_args(["serve", "--port", "9000"])
    assert args.command == "serve"
    assert args.port == 9000
    assert args.host == "127.0.0.1"


class _StubOrchestrator:
    def __init__(self, result: PublishResult) -> None:
        self.result = result
        self.calls: list[tuple[Path, object]] = []

    def run(self, target, config):  # type: ignore[no-untyped-def]
        self.calls.append((target, config))
        return self.result


def _result(tmp_path: Path, *, success: bool) -> PublishResult:
    states = [PublishState.INIT, PublishState.OPTIMIZING]
    states.append(PublishState.DONE if success else PublishState.FAILED)
    return PublishResult(
        success=success,
        state=states[-1],
        states=states,
        debug_root=tmp_path / "bin" / "js-debug",
        release_root=tmp_path / "bin" / "js-release",
        error=None if success else OptimizationError("Optimizer exited with status 1", diagnostic="ERROR - x"),
    )


def test_main_reports_success(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    target = tmp_path / "src" / "App.as"
    target.parent.mkdir()
    target.write_text("", encoding="utf-8")
    stub = _StubOrchestrator(_result(tmp_path, success=True))
    monkeypatch.setattr(cli, "Orchestrator", lambda: stub)

    cli.main(["publish", str(target), "--strict-publish"])

    assert "Published App" in capsys.readouterr().out
    _, config = stub.calls[0]
    assert config.strict_publish is True  # type: ignore[attr-defined]


def test_main_exits_nonzero_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    target = tmp_path / "App.as"
    target.write_text("", encoding="utf-8")
    monkeypatch.setattr(cli, "Orchestrator", lambda: _StubOrchestrator(_result(tmp_path, success=False)))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["publish", str(target)])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "failed during optimizing" in err
    assert "ERROR - x" in err


def test_main_exits_with_usage_code_on_config_error(tmp_path: Path) -> None:
    (tmp_path / ".jspublish.yml").write_text("bogus: true\n", encoding="utf-8")
    target = tmp_path / "App.as"
    target.write_text("", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["publish", str(target)])

    assert excinfo.value.code == 2
