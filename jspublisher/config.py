"""Configuration loading for jspublish (.jspublish.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import yaml

CONFIG_FILE_NAME = ".jspublish.yml"
DEFAULT_SUPPORT_QNAME = "runtime.Language"
DEFAULT_OPTIMIZER_COMMAND: Tuple[str, ...] = ("google-closure-compiler",)
DEFAULT_WORKERS = 4

_KNOWN_KEYS = {
    "output",
    "closure_lib",
    "external_js_lib",
    "strict_publish",
    "redirect_output",
    "resource_path",
    "support",
    "optimizer",
    "workers",
}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed or validated."""


@dataclass(frozen=True)
class OptimizerConfig:
    """External optimizer invocation settings."""

    command: Tuple[str, ...] = DEFAULT_OPTIMIZER_COMMAND
    extra_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PublishConfig:
    """Validated publish settings, built once per run."""

    root: Path
    output: Optional[Path] = None
    closure_lib: Optional[Path] = None
    external_js_lib: Tuple[Path, ...] = ()
    strict_publish: bool = False
    redirect_output: Optional[Path] = None
    resource_path: Tuple[Path, ...] = ()
    support_qname: str = DEFAULT_SUPPORT_QNAME
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    workers: int = DEFAULT_WORKERS

    def with_overrides(self, **overrides: Any) -> "PublishConfig":
        """Return a copy where every non-None override replaces the file value."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        if "external_js_lib" in applied:
            applied["external_js_lib"] = tuple(
                Path(item).expanduser().resolve() for item in applied["external_js_lib"]
            )
            if not applied["external_js_lib"]:
                del applied["external_js_lib"]
        for key in ("output", "closure_lib", "redirect_output"):
            if key in applied:
                applied[key] = Path(applied[key]).expanduser().resolve()
        if "optimizer_command" in applied:
            command = _as_command(applied.pop("optimizer_command"), "optimizer_command")
            applied["optimizer"] = replace(self.optimizer, command=command)
        return replace(self, **applied)


def load_config(config_path: Path) -> PublishConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PublishConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown keys in {config_file.name}: {', '.join(unknown)}")

    support_data = _as_dict(data.get("support"), "support")
    optimizer_data = _as_dict(data.get("optimizer"), "optimizer")

    optimizer = OptimizerConfig()
    if optimizer_data:
        command = optimizer_data.get("command")
        optimizer = OptimizerConfig(
            command=_as_command(command, "optimizer.command") if command is not None else DEFAULT_OPTIMIZER_COMMAND,
            extra_args=tuple(_as_str_list(optimizer_data.get("extra_args"), "optimizer.extra_args")),
        )

    workers = _as_int(data.get("workers"), "workers")
    if workers is not None and workers < 1:
        raise ConfigError("workers must be a positive integer")

    return PublishConfig(
        root=root,
        output=_as_path(data.get("output"), root, "output"),
        closure_lib=_as_path(data.get("closure_lib"), root, "closure_lib"),
        external_js_lib=tuple(
            (root / item).resolve() for item in _as_str_list(data.get("external_js_lib"), "external_js_lib")
        ),
        strict_publish=_as_bool(data.get("strict_publish"), "strict_publish") or False,
        redirect_output=_as_path(data.get("redirect_output"), root, "redirect_output"),
        resource_path=tuple(
            (root / item).resolve() for item in _as_str_list(data.get("resource_path"), "resource_path")
        ),
        support_qname=_as_str(support_data.get("qname"), "support.qname") or DEFAULT_SUPPORT_QNAME,
        optimizer=optimizer,
        workers=workers or DEFAULT_WORKERS,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any, key: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _as_str(value: Any, key: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"{key} must be a string")
    return str(value)


def _as_path(value: Any, root: Path, key: str) -> Optional[Path]:
    text = _as_str(value, key)
    if not text:
        return None
    return (root / Path(text).expanduser()).resolve()


def _as_int(value: Any, key: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigError(f"{key} must be an integer") from exc
    raise ConfigError(f"{key} must be an integer")


def _as_bool(value: Any, key: str) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    raise ConfigError(f"{key} must be a boolean")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        result = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                raise ConfigError(f"{key} entries must be strings")
            result.append(str(item))
        return result
    raise ConfigError(f"{key} must be a list of strings")


def _as_command(value: Any, key: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        parts = value.split()
    else:
        parts = _as_str_list(value, key)
    if not parts:
        raise ConfigError(f"{key} must not be empty")
    return tuple(parts)


__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "OptimizerConfig",
    "PublishConfig",
    "load_config",
]
