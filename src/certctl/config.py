"""Engine configuration loaded from YAML, environment and command line."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .checks.labels import compile_labels_expr
from .checks.engine import expand_labels_filter
from .contracts import validate
from .core.clock import parse_duration
from .core.env import getenv
from .core.errors import ConfigError, LabelExpressionError

CONFIG_SCHEMA = "certctl.config.v1"
DEFAULT_LABELS_FILTER = "common"
DEFAULT_TIMEOUT = "24h"
ENV_OVERRIDES = {
    "labels_filter": "CERTCTL_LABELS_FILTER",
    "timeout": "CERTCTL_TIMEOUT",
    "output_dir": "CERTCTL_OUTPUT_DIR",
}


@dataclass(frozen=True)
class EngineConfig:
    labels_filter: str = DEFAULT_LABELS_FILTER
    timeout: float = 24 * 3600.0
    abort_on_failure: bool = False
    output_dir: Path = Path("results")
    claim_file: str = "claim.json"
    junit_file: str = "certctl_junit.xml"
    suites: tuple[str, ...] = ()
    catalog_file: Path | None = None
    configurations: Mapping[str, Any] = field(default_factory=dict)
    nodes: Mapping[str, Any] = field(default_factory=dict)
    versions: Mapping[str, str] = field(default_factory=dict)

    @property
    def claim_path(self) -> Path:
        return self.output_dir / self.claim_file

    @property
    def junit_path(self) -> Path:
        return self.output_dir / self.junit_file


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"config {path} is not valid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return raw


def load_config(path: Path | None = None, overrides: Mapping[str, Any] | None = None) -> EngineConfig:
    raw: dict[str, Any] = _read_yaml(path) if path is not None else {}
    validate(CONFIG_SCHEMA, raw)
    base_dir = path.parent if path is not None else Path(".")
    for key, env_name in ENV_OVERRIDES.items():
        value = getenv(env_name)
        if value:
            raw[key] = value
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    labels_filter = str(raw.get("labels_filter", DEFAULT_LABELS_FILTER)).strip()
    try:
        compile_labels_expr(expand_labels_filter(labels_filter))
    except LabelExpressionError as exc:
        raise ConfigError(f"invalid labels_filter: {exc}") from exc
    try:
        timeout = parse_duration(raw.get("timeout", DEFAULT_TIMEOUT))
    except ValueError as exc:
        raise ConfigError(f"invalid timeout: {exc}") from exc
    catalog_file = raw.get("catalog_file")
    cluster = raw.get("cluster") or {}
    return EngineConfig(
        labels_filter=labels_filter,
        timeout=timeout,
        abort_on_failure=bool(raw.get("abort_on_failure", False)),
        output_dir=Path(str(raw.get("output_dir", "results"))),
        claim_file=str(raw.get("claim_file", "claim.json")),
        junit_file=str(raw.get("junit_file", "certctl_junit.xml")),
        suites=tuple(str(item) for item in raw.get("suites", ())),
        catalog_file=(base_dir / str(catalog_file)) if catalog_file else None,
        configurations=dict(raw.get("configurations") or {}),
        nodes=dict(cluster.get("nodes") or {}),
        versions={str(key): str(value) for key, value in (cluster.get("versions") or {}).items()},
    )


__all__ = ["CONFIG_SCHEMA", "EngineConfig", "load_config"]
