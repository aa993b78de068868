from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from certctl.checks.catalog import Catalog
from certctl.checks.check import Check
from certctl.checks.model import ReportObject
from certctl.checks.registry import ChecksDB

EPOCH = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock: every reading advances by ``step`` seconds."""

    def __init__(self, start: datetime = EPOCH, step: float = 0.5) -> None:
        self._now = start
        self._mono = 100.0
        self.step = step

    def now(self) -> datetime:
        self._now += timedelta(seconds=self.step)
        return self._now

    def monotonic(self) -> float:
        self._mono += self.step
        return self._mono


def passing(check: Check, _run: object) -> None:
    check.log_info("all good")
    check.set_result([ReportObject.new("ok", "Thing", True).add_field("Name", check.id)], [])


def failing(check: Check, _run: object) -> None:
    check.set_result([], [ReportObject.new("not ok", "Thing", False).add_field("Name", check.id)])


def raising(_check: Check, _run: object) -> None:
    raise RuntimeError("api unreachable")


def add_check(db: ChecksDB, group: str, check_id: str, labels: list[str], fn: Callable[[Check, object], None] = passing) -> Check:
    check = Check(check_id, labels).with_check_fn(fn)
    db.new_checks_group(group).add(check)
    return check


def sample_catalog() -> Catalog:
    catalog = Catalog()
    catalog.add_entry("suiteA-check1", "suiteA", "first check", "fix the first thing", tags=["common"])
    catalog.add_entry(
        "suiteA-check2",
        "suiteA",
        "second check",
        "fix the second thing",
        classification={"Telco": "Mandatory"},
        tags=["extended"],
    )
    return catalog


def sample_db(catalog: Catalog, fns: dict[str, Callable[[Check, object], None]] | None = None) -> ChecksDB:
    db = ChecksDB()
    group = db.new_checks_group("suiteA")
    for entry in catalog.entries():
        labels = entry.identifier.labels()
        group.add(Check(entry.identifier.id, labels).with_check_fn((fns or {}).get(entry.identifier.id, passing)))
    return db
