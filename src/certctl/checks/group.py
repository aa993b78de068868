from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from ..core.errors import RegistryError
from .check import Check
from .model import GroupHookFn, HookFn

if TYPE_CHECKING:
    from .registry import ChecksDB


class ChecksGroup:
    """Named, ordered checks plus optional group-wide hooks.

    ``before_all``/``after_all`` receive the list of selected checks of the group;
    ``before_each``/``after_each`` receive the check about to run or just finished.
    """

    def __init__(self, name: str, *, registry: ChecksDB | None = None) -> None:
        self.name = str(name).strip()
        if not self.name:
            raise RegistryError("checks group name cannot be empty")
        self.checks: list[Check] = []
        self.before_all_fn: GroupHookFn | None = None
        self.after_all_fn: GroupHookFn | None = None
        self.before_each_fn: HookFn | None = None
        self.after_each_fn: HookFn | None = None
        self._registry = registry

    def __repr__(self) -> str:
        return f"ChecksGroup({self.name!r}, checks={len(self.checks)})"

    def with_before_all_fn(self, fn: GroupHookFn) -> "ChecksGroup":
        self.before_all_fn = _require_callable(self.name, "beforeAll", fn)
        return self

    def with_after_all_fn(self, fn: GroupHookFn) -> "ChecksGroup":
        self.after_all_fn = _require_callable(self.name, "afterAll", fn)
        return self

    def with_before_each_fn(self, fn: HookFn) -> "ChecksGroup":
        self.before_each_fn = _require_callable(self.name, "beforeEach", fn)
        return self

    def with_after_each_fn(self, fn: HookFn) -> "ChecksGroup":
        self.after_each_fn = _require_callable(self.name, "afterEach", fn)
        return self

    def add(self, check: Check) -> "ChecksGroup":
        check.validate()
        if self._registry is not None:
            self._registry.claim_id(check.id, self.name)
        elif any(existing.id == check.id for existing in self.checks):
            raise RegistryError(f"duplicate check id `{check.id}` in group `{self.name}`")
        check.group_name = self.name
        if self.name not in check.labels:
            check.labels.append(self.name)
        self.checks.append(check)
        return self


def _require_callable(group: str, hook: str, fn: Callable[..., object]) -> Callable[..., object]:
    if not callable(fn):
        raise RegistryError(f"group `{group}` {hook} hook is not callable")
    return fn


__all__ = ["ChecksGroup"]
