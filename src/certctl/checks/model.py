from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .check import Check
    from .engine import RunState

REASON_FOR_COMPLIANCE = "Reason For Compliance"
REASON_FOR_NON_COMPLIANCE = "Reason For Non Compliance"


class CheckStatus(str, Enum):
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"
    ERROR = "error"
    ABORTED = "aborted"

    def __str__(self) -> str:
        return self.value


class SkipMode(str, Enum):
    ANY = "any"
    ALL = "all"


@dataclass
class ReportObject:
    object_type: str
    fields_keys: list[str] = field(default_factory=list)
    fields_values: list[str] = field(default_factory=list)

    @classmethod
    def new(cls, reason: str, object_type: str, compliant: bool) -> "ReportObject":
        obj = cls(object_type=str(object_type))
        return obj.add_field(REASON_FOR_COMPLIANCE if compliant else REASON_FOR_NON_COMPLIANCE, reason)

    def add_field(self, key: str, value: object) -> "ReportObject":
        self.fields_keys.append(str(key))
        self.fields_values.append(str(value))
        return self

    @property
    def compliant(self) -> bool:
        return REASON_FOR_NON_COMPLIANCE not in self.fields_keys

    def to_dict(self) -> dict[str, Any]:
        return {
            "ObjectType": self.object_type,
            "ObjectFieldsKeys": list(self.fields_keys),
            "ObjectFieldsValues": list(self.fields_values),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ReportObject":
        return cls(
            object_type=str(payload.get("ObjectType", "")),
            fields_keys=[str(item) for item in payload.get("ObjectFieldsKeys") or []],
            fields_values=[str(item) for item in payload.get("ObjectFieldsValues") or []],
        )


def report_objects_to_string(compliant: Iterable[ReportObject], non_compliant: Iterable[ReportObject]) -> str:
    compliant_rows = [obj.to_dict() for obj in compliant]
    non_compliant_rows = [obj.to_dict() for obj in non_compliant]
    return json.dumps(
        {
            "CompliantObjectsOut": compliant_rows or None,
            "NonCompliantObjectsOut": non_compliant_rows or None,
        }
    )


def report_objects_from_string(details: str) -> tuple[list[ReportObject], list[ReportObject]]:
    payload = json.loads(details) if details else {}
    if not isinstance(payload, dict):
        raise ValueError("check details must be a JSON object")
    compliant = [ReportObject.from_dict(row) for row in payload.get("CompliantObjectsOut") or []]
    non_compliant = [ReportObject.from_dict(row) for row in payload.get("NonCompliantObjectsOut") or []]
    return compliant, non_compliant


class CheckFn(Protocol):
    def __call__(self, check: Check, run: RunState) -> None: ...


class HookFn(Protocol):
    def __call__(self, check: Check) -> None: ...


class GroupHookFn(Protocol):
    def __call__(self, checks: list[Check]) -> None: ...


@runtime_checkable
class SkipPredicate(Protocol):
    def __call__(self) -> tuple[bool, str]: ...


__all__ = [
    "CheckFn",
    "CheckStatus",
    "GroupHookFn",
    "HookFn",
    "REASON_FOR_COMPLIANCE",
    "REASON_FOR_NON_COMPLIANCE",
    "ReportObject",
    "SkipMode",
    "SkipPredicate",
    "report_objects_from_string",
    "report_objects_to_string",
]
