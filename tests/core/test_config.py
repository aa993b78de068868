from __future__ import annotations

from pathlib import Path

import pytest

from certctl.config import load_config
from certctl.core.errors import ConfigError, ScriptError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "certctl.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file() -> None:
    config = load_config()
    assert config.labels_filter == "common"
    assert config.timeout == 86400.0
    assert config.claim_path == Path("results/claim.json")
    assert config.junit_path == Path("results/certctl_junit.xml")
    assert config.suites == ()


def test_file_values_and_relative_catalog(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
labels_filter: "common && !telco"
timeout: 1h30m
abort_on_failure: true
output_dir: out
suites: [certctl.suites.platform]
catalog_file: catalog.yaml
configurations:
  targetNamespaces: [tnf]
cluster:
  versions: {k8s: v1.29.1}
""",
    )
    config = load_config(path)
    assert config.labels_filter == "common && !telco"
    assert config.timeout == 5400.0
    assert config.abort_on_failure is True
    assert config.catalog_file == tmp_path / "catalog.yaml"
    assert config.configurations == {"targetNamespaces": ["tnf"]}
    assert config.versions == {"k8s": "v1.29.1"}


def test_env_then_cli_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, "labels_filter: common\ntimeout: 10s\n")
    monkeypatch.setenv("CERTCTL_LABELS_FILTER", "extended")
    monkeypatch.setenv("CERTCTL_TIMEOUT", "20s")
    config = load_config(path)
    assert (config.labels_filter, config.timeout) == ("extended", 20.0)
    config = load_config(path, {"labels_filter": "telco", "timeout": None})
    assert (config.labels_filter, config.timeout) == ("telco", 20.0)


def test_invalid_values_are_config_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="labels_filter"):
        load_config(_write(tmp_path, "labels_filter: 'a &&'\n"))
    with pytest.raises(ConfigError, match="timeout"):
        load_config(_write(tmp_path, "timeout: forever\n"))
    with pytest.raises(ConfigError, match="mapping"):
        load_config(_write(tmp_path, "- a\n- b\n"))


def test_unknown_keys_fail_schema_validation(tmp_path: Path) -> None:
    with pytest.raises(ScriptError, match="certctl.config.v1"):
        load_config(_write(tmp_path, "label_filter: common\n"))
