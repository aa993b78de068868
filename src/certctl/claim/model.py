from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..checks.catalog import CLASSIFICATION_KEYS, Identifier

CLAIM_FORMAT_VERSION = "v0.5.0"
TOOL_KEY = "certctl"


@dataclass(frozen=True)
class CatalogInfo:
    description: str = ""
    remediation: str = ""
    best_practice_reference: str = ""
    exception_process: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "bestPracticeReference": self.best_practice_reference,
            "description": self.description,
            "exceptionProcess": self.exception_process,
            "remediation": self.remediation,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CatalogInfo":
        return cls(
            description=str(payload.get("description", "")),
            remediation=str(payload.get("remediation", "")),
            best_practice_reference=str(payload.get("bestPracticeReference", "")),
            exception_process=str(payload.get("exceptionProcess", "")),
        )


@dataclass(frozen=True)
class Result:
    test_id: Identifier
    state: str
    start_time: str = ""
    end_time: str = ""
    duration: int = 0
    skip_reason: str = ""
    check_details: str = ""
    failure_location: str = ""
    failure_line_content: str = ""
    captured_test_output: str = ""
    catalog_info: CatalogInfo = field(default_factory=CatalogInfo)
    category_classification: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "capturedTestOutput": self.captured_test_output,
            "catalogInfo": self.catalog_info.to_dict(),
            "categoryClassification": {key: str(self.category_classification.get(key, "")) for key in CLASSIFICATION_KEYS},
            "checkDetails": self.check_details,
            "duration": int(self.duration),
            "endTime": self.end_time,
            "failureLineContent": self.failure_line_content,
            "failureLocation": self.failure_location,
            "skipReason": self.skip_reason,
            "startTime": self.start_time,
            "state": self.state,
            "testID": self.test_id.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Result":
        return cls(
            test_id=Identifier.from_dict(payload.get("testID") or {}),
            state=str(payload.get("state", "")),
            start_time=str(payload.get("startTime", "")),
            end_time=str(payload.get("endTime", "")),
            duration=int(payload.get("duration", 0) or 0),
            skip_reason=str(payload.get("skipReason", "")),
            check_details=str(payload.get("checkDetails", "")),
            failure_location=str(payload.get("failureLocation", "")),
            failure_line_content=str(payload.get("failureLineContent", "")),
            captured_test_output=str(payload.get("capturedTestOutput", "")),
            catalog_info=CatalogInfo.from_dict(payload.get("catalogInfo") or {}),
            category_classification=dict(payload.get("categoryClassification") or {}),
        )


@dataclass(frozen=True)
class Versions:
    certctl: str = ""
    certctl_git_commit: str = ""
    k8s: str = ""
    oc_client: str = ""
    ocp: str = ""
    claim_format: str = CLAIM_FORMAT_VERSION

    def to_dict(self) -> dict[str, str]:
        return {
            "certctl": self.certctl,
            "certctlGitCommit": self.certctl_git_commit,
            "claimFormat": self.claim_format,
            "k8s": self.k8s,
            "ocClient": self.oc_client,
            "ocp": self.ocp,
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, tool_version: str = "") -> "Versions":
        return cls(
            certctl=str(payload.get("certctl", tool_version) or tool_version),
            certctl_git_commit=str(payload.get("certctlGitCommit", payload.get("gitCommit", "")) or ""),
            k8s=str(payload.get("k8s", "") or ""),
            oc_client=str(payload.get("ocClient", "") or ""),
            ocp=str(payload.get("ocp", "") or ""),
        )


__all__ = ["CLAIM_FORMAT_VERSION", "CatalogInfo", "Result", "TOOL_KEY", "Versions"]
