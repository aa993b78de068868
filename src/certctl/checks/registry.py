from __future__ import annotations

from typing import Iterator

from ..core.errors import RegistryError
from .check import Check
from .group import ChecksGroup
from .labels import LabelsExprEvaluator


class ChecksDB:
    """Ordered registry of checks groups; check ids are unique across all groups."""

    def __init__(self) -> None:
        self._groups: dict[str, ChecksGroup] = {}
        self._owners: dict[str, str] = {}

    def new_checks_group(self, name: str) -> ChecksGroup:
        key = str(name).strip()
        group = self._groups.get(key)
        if group is None:
            group = ChecksGroup(key, registry=self)
            self._groups[key] = group
        return group

    def claim_id(self, check_id: str, group_name: str) -> None:
        owner = self._owners.get(check_id)
        if owner is not None:
            raise RegistryError(f"duplicate check id `{check_id}`: already registered in group `{owner}`")
        self._owners[check_id] = group_name

    @property
    def groups(self) -> list[ChecksGroup]:
        return list(self._groups.values())

    def iter_checks(self) -> Iterator[Check]:
        for group in self._groups.values():
            yield from group.checks

    def filter_check_ids(self, evaluator: LabelsExprEvaluator) -> list[str]:
        return [check.id for check in self.iter_checks() if evaluator.eval(check.labels)]

    def __len__(self) -> int:
        return len(self._owners)


__all__ = ["ChecksDB"]
