from __future__ import annotations

import socket
from pathlib import Path

import pytest
from hypothesis import settings

_ALLOWED_MARKERS = {"unit", "integration", "slow"}

settings.register_profile("certctl", deadline=None, max_examples=60)
settings.load_profile("certctl")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


@pytest.fixture(autouse=True)
def clean_certctl_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CERTCTL_LABELS_FILTER", "CERTCTL_TIMEOUT", "CERTCTL_OUTPUT_DIR", "CERTCTL_LOG_JSON", "RUN_ID", "PROFILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        """
entries:
  - id: suiteA-check1
    suite: suiteA
    tags: [common]
    description: first check
    remediation: fix the first thing
  - id: suiteA-check2
    suite: suiteA
    tags: [extended]
    description: second check
    remediation: fix the second thing
    categoryClassification:
      Telco: Mandatory
""".lstrip(),
        encoding="utf-8",
    )
    return path
