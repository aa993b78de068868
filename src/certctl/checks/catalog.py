"""Test identifiers and the descriptive catalog copied into every claim."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from ..core.errors import ConfigError, RegistryError

TAG_COMMON = "common"
TAG_EXTENDED = "extended"
TAG_TELCO = "telco"
TAG_FAREDGE = "faredge"
ALL_TAGS = (TAG_COMMON, TAG_EXTENDED, TAG_FAREDGE, TAG_TELCO)

MANDATORY = "Mandatory"
OPTIONAL = "Optional"
CLASSIFICATION_KEYS = ("Extended", "FarEdge", "NonTelco", "Telco")

NO_DOCUMENTED_PROCESS = "No exceptions"
NO_DOCUMENT_LINK = "No Reference Document Specified"


@dataclass(frozen=True)
class Identifier:
    id: str
    suite: str
    tags: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id).strip())
        object.__setattr__(self, "suite", str(self.suite).strip())
        object.__setattr__(self, "tags", str(self.tags).strip())

    def labels(self) -> list[str]:
        return [tag for tag in self.tags.split(",") if tag] + [self.id, self.suite]

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "suite": self.suite, "tags": self.tags}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Identifier":
        return cls(id=str(payload.get("id", "")), suite=str(payload.get("suite", "")), tags=str(payload.get("tags", "")))


@dataclass(frozen=True)
class CatalogEntry:
    identifier: Identifier
    description: str = ""
    remediation: str = ""
    best_practice_reference: str = NO_DOCUMENT_LINK
    exception_process: str = NO_DOCUMENTED_PROCESS
    qe: bool = False
    category_classification: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "best_practice_reference", str(self.best_practice_reference).strip() or NO_DOCUMENT_LINK)
        object.__setattr__(self, "exception_process", str(self.exception_process).strip() or NO_DOCUMENTED_PROCESS)
        classification = {key: OPTIONAL for key in CLASSIFICATION_KEYS}
        for key, value in dict(self.category_classification or {}).items():
            if key not in classification:
                raise RegistryError(f"unknown category classification `{key}` for `{self.identifier.id}`")
            if value not in {MANDATORY, OPTIONAL}:
                raise RegistryError(f"classification `{key}` for `{self.identifier.id}` must be Mandatory or Optional")
            classification[key] = value
        object.__setattr__(self, "category_classification", classification)


class Catalog:
    def __init__(self) -> None:
        self._entries: dict[str, CatalogEntry] = {}

    def add_entry(
        self,
        test_id: str,
        suite: str,
        description: str,
        remediation: str,
        *,
        exception_process: str = "",
        reference: str = "",
        qe: bool = False,
        classification: Mapping[str, str] | None = None,
        tags: Iterable[str] = (),
    ) -> Identifier:
        tag_list = [str(tag).strip() for tag in tags if str(tag).strip()]
        identifier = Identifier(id=test_id, suite=suite, tags=",".join(tag_list or [TAG_COMMON]))
        if not identifier.id or not identifier.suite:
            raise RegistryError("catalog entries need both an id and a suite")
        if identifier.id in self._entries:
            raise RegistryError(f"duplicate catalog entry `{identifier.id}`")
        self._entries[identifier.id] = CatalogEntry(
            identifier=identifier,
            description=description,
            remediation=remediation,
            best_practice_reference=reference,
            exception_process=exception_process,
            qe=qe,
            category_classification=classification or {},
        )
        return identifier

    def get(self, test_id: str) -> CatalogEntry | None:
        return self._entries.get(test_id)

    def entries(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_yaml(cls, path: Path) -> "Catalog":
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"failed to read catalog {path}: {exc}") from exc
        rows = raw.get("entries") if isinstance(raw, dict) else None
        if not isinstance(rows, list):
            raise ConfigError(f"catalog {path} must contain an `entries` list")
        catalog = cls()
        for row in rows:
            if not isinstance(row, dict):
                raise ConfigError(f"catalog {path} has a non-mapping entry")
            tags = row.get("tags") or []
            if isinstance(tags, str):
                tags = tags.split(",")
            catalog.add_entry(
                str(row.get("id", "")),
                str(row.get("suite", "")),
                str(row.get("description", "")),
                str(row.get("remediation", "")),
                exception_process=str(row.get("exceptionProcess", "")),
                reference=str(row.get("bestPracticeReference", "")),
                qe=bool(row.get("qe", False)),
                classification=row.get("categoryClassification") or {},
                tags=tags,
            )
        return catalog


def get_test_id_and_labels(identifier: Identifier) -> tuple[str, list[str]]:
    return identifier.id, identifier.labels()


__all__ = [
    "ALL_TAGS",
    "CLASSIFICATION_KEYS",
    "Catalog",
    "CatalogEntry",
    "Identifier",
    "MANDATORY",
    "NO_DOCUMENTED_PROCESS",
    "NO_DOCUMENT_LINK",
    "OPTIONAL",
    "TAG_COMMON",
    "TAG_EXTENDED",
    "TAG_FAREDGE",
    "TAG_TELCO",
    "get_test_id_and_labels",
]
