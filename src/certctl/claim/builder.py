from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Mapping, Protocol

from .. import __version__
from ..checks.catalog import Catalog
from ..checks.engine import RunState
from ..contracts import validate
from ..core.clock import SystemClock, format_iso_utc
from ..core.context import RunContext
from ..core.errors import ClaimError
from ..core.logging import log_event
from ..core.serialize import dumps_json, write_text_file
from .junit import build_junit, junit_as_map, write_junit
from .model import CLAIM_FORMAT_VERSION, TOOL_KEY, Versions
from .reconcile import get_reconciled_results

CLAIM_SCHEMA = "certctl.claim.v1"
_METADATA_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S+00:00"


class ClusterInfo(Protocol):
    def nodes(self) -> dict[str, Any]: ...

    def versions(self) -> Mapping[str, str]: ...


@dataclass(frozen=True)
class StaticClusterInfo:
    nodes_payload: Mapping[str, Any] = field(default_factory=dict)
    versions_payload: Mapping[str, str] = field(default_factory=dict)

    def nodes(self) -> dict[str, Any]:
        return json.loads(json.dumps(dict(self.nodes_payload)))

    def versions(self) -> Mapping[str, str]:
        return dict(self.versions_payload)


def parse_metadata_time(value: str) -> datetime:
    try:
        return datetime.strptime(str(value), _METADATA_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise ClaimError(f"invalid claim metadata time `{value}`") from exc


def claim_times(root: Mapping[str, Any]) -> tuple[datetime, datetime]:
    metadata = root["claim"]["metadata"]
    return parse_metadata_time(metadata["startTime"]), parse_metadata_time(metadata["endTime"])


def raw_results_for(results: Mapping[str, Mapping[str, Any]], start: datetime, end: datetime) -> dict[str, Any]:
    return {TOOL_KEY: junit_as_map(build_junit(results, start, end))}


def check_claim_version(root: Mapping[str, Any]) -> None:
    found = str(root.get("claim", {}).get("versions", {}).get("claimFormat", ""))
    if found != CLAIM_FORMAT_VERSION:
        raise ClaimError(f"claim file version `{found}` is not supported, expected `{CLAIM_FORMAT_VERSION}`")


def read_claim(path: Path) -> dict[str, Any]:
    try:
        root = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ClaimError(f"failed to read claim file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ClaimError(f"claim file {path} is not valid JSON: {exc}") from exc
    if not isinstance(root, dict) or not isinstance(root.get("claim"), dict):
        raise ClaimError(f"claim file {path} has no `claim` root")
    check_claim_version(root)
    validate(CLAIM_SCHEMA, root)
    return root


def write_claim(path: Path, root: Mapping[str, Any]) -> Path:
    return write_text_file(path, dumps_json(root, pretty=True) + "\n")


class ClaimBuilder:
    """Collects run results into a claim document and its JUnit projection."""

    def __init__(
        self,
        catalog: Catalog,
        *,
        configurations: Mapping[str, Any] | None = None,
        cluster: ClusterInfo | None = None,
        ctx: RunContext | None = None,
        clock: SystemClock | None = None,
    ) -> None:
        self.catalog = catalog
        self.configurations = dict(configurations or {})
        self.cluster = cluster or StaticClusterInfo()
        self.ctx = ctx or RunContext.quiet_default()
        self.clock = clock or SystemClock()
        self.root: dict[str, Any] = {}
        self.reset()

    def reset(self) -> None:
        self.start_time = self.clock.now().replace(microsecond=0)
        self.end_time = self.start_time
        self.root = {
            "claim": {
                "configurations": json.loads(json.dumps(self.configurations)),
                "metadata": {"startTime": format_iso_utc(self.start_time), "endTime": ""},
                "nodes": {},
                "rawResults": {},
                "results": {},
                "versions": {},
            }
        }

    def build(self, output_path: Path, run: RunState) -> dict[str, Any]:
        self.end_time = self.clock.now().replace(microsecond=0)
        claim = self.root["claim"]
        claim["metadata"]["endTime"] = format_iso_utc(self.end_time)
        results = {test_id: result.to_dict() for test_id, result in get_reconciled_results(run, self.catalog).items()}
        claim["results"] = results
        claim["rawResults"] = raw_results_for(results, self.start_time, self.end_time)
        claim["nodes"] = self.cluster.nodes()
        claim["versions"] = Versions.from_mapping(self.cluster.versions(), tool_version=__version__).to_dict()
        validate(CLAIM_SCHEMA, self.root)
        write_claim(output_path, self.root)
        log_event(self.ctx, "info", "claim", "write", path=str(output_path), results=len(results))
        return self.root

    def to_junit_xml(self, output_path: Path, start: datetime | None = None, end: datetime | None = None) -> Path:
        results = self.root["claim"]["results"]
        path = write_junit(output_path, results, start or self.start_time, end or self.end_time)
        log_event(self.ctx, "info", "claim", "junit", path=str(output_path), tests=len(results))
        return path


__all__ = [
    "CLAIM_SCHEMA",
    "ClaimBuilder",
    "ClusterInfo",
    "StaticClusterInfo",
    "check_claim_version",
    "claim_times",
    "parse_metadata_time",
    "raw_results_for",
    "read_claim",
    "write_claim",
]
