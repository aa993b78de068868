from __future__ import annotations

from certctl.checks.engine import run_checks
from certctl.checks.registry import ChecksDB
from certctl.checks.report import build_summary_payload, render_failed_checks, render_text

from helpers import FakeClock, add_check, failing, passing, raising


def _run():  # noqa: ANN202
    db = ChecksDB()
    add_check(db, "net", "net-ok", ["common"], passing)
    add_check(db, "net", "net-bad", ["common"], failing)
    add_check(db, "ops", "ops-err", ["common"], raising)
    return run_checks(db, "common", 3600, clock=FakeClock())


def test_summary_payload_counts_per_group() -> None:
    payload = build_summary_payload(_run())
    assert payload["groups"][0] == {"name": "net", "passed": 1, "failed": 1, "skipped": 0, "error": 0, "aborted": 0}
    assert payload["totals"]["checks"] == 3
    assert payload["totals"]["error"] == 1


def test_render_text_has_one_row_per_group_and_total() -> None:
    lines = render_text(_run()).splitlines()
    assert lines[0].split() == ["SUITE", "PASSED", "FAILED", "SKIPPED", "ERROR", "ABORTED"]
    assert lines[2].split() == ["net", "1", "1", "0", "0", "0"]
    assert lines[3].split() == ["ops", "0", "0", "0", "1", "0"]
    assert lines[-1].split() == ["TOTAL", "1", "1", "0", "1", "0"]


def test_render_failed_checks_lists_objects_and_logs() -> None:
    text = render_failed_checks(_run())
    assert "[FAILED] net-bad" in text
    assert "Reason For Non Compliance=not ok, Name=net-bad" in text
    assert "[ERROR] ops-err: check ops-err function unexpected error: api unreachable" in text
    assert "net-ok" not in text
