from __future__ import annotations

import threading

import pytest

from certctl.checks.check import Check
from certctl.checks.engine import GLOBAL_TIMEOUT_REASON, INTERRUPT_REASON, expand_labels_filter, run_checks
from certctl.checks.model import CheckStatus
from certctl.checks.registry import ChecksDB
from certctl.core.errors import ConfigError, LabelExpressionError

from helpers import FakeClock, add_check, failing, passing, raising, sample_catalog, sample_db


def _states(run) -> dict[str, str]:  # noqa: ANN001
    return {check.id: check.status.value for check in run.checks}


def test_common_filter_selects_only_common_check() -> None:
    db = sample_db(sample_catalog())
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"suiteA-check1": "passed"}


def test_all_expands_to_every_tag() -> None:
    assert expand_labels_filter("all") == "common,extended,faredge,telco"
    run = run_checks(sample_db(sample_catalog()), "all", 3600, clock=FakeClock())
    assert list(_states(run)) == ["suiteA-check1", "suiteA-check2"]


def test_bad_filter_raises_before_any_check_runs() -> None:
    calls: list[str] = []
    db = ChecksDB()
    add_check(db, "g", "g-one", ["common"], lambda check, _run: calls.append(check.id))
    with pytest.raises(LabelExpressionError):
        run_checks(db, "common &&", 3600)
    with pytest.raises(ConfigError):
        run_checks(db, "common", 0)
    assert calls == []


def test_outcomes_are_classified() -> None:
    db = ChecksDB()
    add_check(db, "g", "g-pass", ["common"], passing)
    add_check(db, "g", "g-fail", ["common"], failing)
    add_check(db, "g", "g-error", ["common"], raising)
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"g-pass": "passed", "g-fail": "failed", "g-error": "error"}
    errored = run.checks[2]
    assert "api unreachable" in errored.skip_reason
    path, line = errored.failure_location.rsplit(":", 1)
    assert path.endswith("helpers.py") and line.isdigit()
    assert "raise RuntimeError" in errored.failure_line_content
    assert run.failed_count == 1
    assert [check.id for check in run.failed_checks()] == ["g-fail", "g-error"]


def test_skip_predicate_prevents_check_fn() -> None:
    calls: list[str] = []
    db = ChecksDB()
    check = Check("g-skip", ["common"]).with_skip_check_fn(lambda: (True, "no pods")).with_check_fn(
        lambda c, _run: calls.append(c.id)
    )
    db.new_checks_group("g").add(check)
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert calls == []
    assert check.status == CheckStatus.SKIPPED
    assert check.skip_reason == "no pods"
    assert run.checks == [check]


def test_skip_mode_all_requires_every_predicate() -> None:
    db = ChecksDB()
    partial = (
        Check("g-partial", ["common"])
        .with_skip_check_fn(lambda: (True, "first"), lambda: (False, "second"))
        .with_skip_mode_all()
        .with_check_fn(passing)
    )
    full = (
        Check("g-full", ["common"])
        .with_skip_check_fn(lambda: (True, "first"), lambda: (True, "second"))
        .with_skip_mode_all()
        .with_check_fn(passing)
    )
    db.new_checks_group("g").add(partial).add(full)
    run_checks(db, "common", 3600, clock=FakeClock())
    assert partial.status == CheckStatus.PASSED
    assert full.status == CheckStatus.SKIPPED
    assert full.skip_reason == "first, second"


def test_raising_skip_predicate_forces_skip() -> None:
    def _broken() -> tuple[bool, str]:
        raise ValueError("no client")

    db = ChecksDB()
    check = Check("g-x", ["common"]).with_skip_check_fn(_broken).with_check_fn(passing)
    db.new_checks_group("g").add(check)
    run_checks(db, "common", 3600, clock=FakeClock())
    assert check.status == CheckStatus.SKIPPED
    assert "idx=0" in check.skip_reason and "no client" in check.skip_reason


def test_group_hooks_wrap_every_check_including_skipped() -> None:
    events: list[str] = []
    db = ChecksDB()
    group = db.new_checks_group("g")
    group.with_before_all_fn(lambda checks: events.append(f"beforeAll:{len(checks)}"))
    group.with_before_each_fn(lambda check: events.append(f"before:{check.id}"))
    group.with_after_each_fn(lambda check: events.append(f"after:{check.id}"))
    group.with_after_all_fn(lambda checks: events.append("afterAll"))
    group.add(Check("g-one", ["common"]).with_check_fn(lambda c, _r: events.append("run:g-one")))
    group.add(Check("g-two", ["common"]).with_skip_check_fn(lambda: (True, "skip")).with_check_fn(passing))
    group.add(Check("g-three", ["extended"]).with_check_fn(passing))
    run_checks(db, "common", 3600, clock=FakeClock())
    assert events == [
        "beforeAll:2",
        "before:g-one",
        "run:g-one",
        "after:g-one",
        "before:g-two",
        "after:g-two",
        "afterAll",
    ]


def test_check_level_hooks_compose_with_group_hooks() -> None:
    events: list[str] = []
    db = ChecksDB()
    group = db.new_checks_group("g").with_before_each_fn(lambda c: events.append("group-before"))
    check = (
        Check("g-one", ["common"])
        .with_before_each_fn(lambda c: events.append("check-before"))
        .with_after_each_fn(lambda c: events.append("check-after"))
        .with_check_fn(lambda c, _r: events.append("body"))
    )
    group.add(check)
    run_checks(db, "common", 3600, clock=FakeClock())
    assert events == ["group-before", "check-before", "body", "check-after"]


def test_before_each_failure_stops_the_group_only() -> None:
    db = ChecksDB()

    def _before(check: Check) -> None:
        if check.id == "a-two":
            raise RuntimeError("no namespace")

    db.new_checks_group("a").with_before_each_fn(_before)
    add_check(db, "a", "a-one", ["common"])
    add_check(db, "a", "a-two", ["common"])
    add_check(db, "a", "a-three", ["common"])
    add_check(db, "b", "b-one", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "passed", "a-two": "error", "a-three": "skipped", "b-one": "passed"}
    assert run.checks[1].skip_reason == "beforeEach function unexpected error: no namespace"
    assert run.checks[2].skip_reason == "group a beforeEach function unexpected error"
    assert run.group_errors


def test_before_all_failure_marks_first_error_and_skips_rest() -> None:
    def _setup(_checks: list[Check]) -> None:
        raise RuntimeError("setup")

    db = ChecksDB()
    db.new_checks_group("a").with_before_all_fn(_setup)
    add_check(db, "a", "a-one", ["common"])
    add_check(db, "a", "a-two", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "error", "a-two": "skipped"}
    assert run.checks[1].skip_reason == "group a beforeAll function unexpected error"


def test_after_each_failure_errors_current_check_and_skips_rest() -> None:
    db = ChecksDB()

    def _after(check: Check) -> None:
        if check.id == "a-one":
            raise RuntimeError("teardown")

    db.new_checks_group("a").with_after_each_fn(_after)
    add_check(db, "a", "a-one", ["common"])
    add_check(db, "a", "a-two", ["common"])
    add_check(db, "b", "b-one", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "error", "a-two": "skipped", "b-one": "passed"}
    assert run.checks[0].skip_reason == "afterEach function unexpected error: teardown"
    assert run.checks[1].skip_reason == "group a afterEach function unexpected error"


def test_after_all_failure_errors_last_check() -> None:
    def _cleanup(_checks: list[Check]) -> None:
        raise RuntimeError("cleanup")

    db = ChecksDB()
    db.new_checks_group("a").with_after_all_fn(_cleanup)
    add_check(db, "a", "a-one", ["common"])
    add_check(db, "a", "a-two", ["common"])
    add_check(db, "b", "b-one", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "passed", "a-two": "error", "b-one": "passed"}
    assert run.checks[1].skip_reason == "afterAll function unexpected error: cleanup"
    assert run.group_errors == ["group a afterAll function unexpected error: cleanup"]


def test_check_error_does_not_stop_following_checks() -> None:
    db = ChecksDB()
    add_check(db, "g", "g-error", ["common"], raising)
    add_check(db, "g", "g-after", ["common"], passing)
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"g-error": "error", "g-after": "passed"}


def test_soft_abort_annotates_later_checks() -> None:
    db = ChecksDB()
    add_check(db, "g", "g-first", ["common"], passing)
    add_check(db, "g", "g-trigger", ["common"], failing)
    add_check(db, "g", "g-later-pass", ["common"], passing)
    add_check(db, "g", "g-later-fail", ["common"], failing)
    run = run_checks(db, "common", 3600, abort_on_failure=True, clock=FakeClock())
    assert _states(run) == {"g-first": "passed", "g-trigger": "failed", "g-later-pass": "passed", "g-later-fail": "failed"}
    assert run.abort_trigger == "g-trigger"
    assert run.checks[0].abort_reason == ""
    assert run.checks[1].abort_reason == ""
    assert run.checks[2].abort_reason == "suite aborted due to failure of test g-trigger"
    assert run.checks[3].abort_reason == "suite aborted due to failure of test g-trigger"
    assert "suite aborted" in run.checks[2].get_logs()


def test_no_abort_trigger_without_abort_on_failure() -> None:
    db = ChecksDB()
    add_check(db, "g", "g-fail", ["common"], failing)
    add_check(db, "g", "g-next", ["common"], passing)
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert run.abort_trigger == ""
    assert run.checks[1].abort_reason == ""


def test_manual_abort_skips_every_remaining_check() -> None:
    db = ChecksDB()
    add_check(db, "a", "a-one", ["common"], lambda check, _run: check.abort("cluster unreachable"))
    add_check(db, "a", "a-two", ["common"])
    add_check(db, "b", "b-one", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "aborted", "a-two": "skipped", "b-one": "skipped"}
    assert {check.skip_reason for check in run.checks} == {"cluster unreachable"}
    assert run.stop_reason == "cluster unreachable"


@pytest.mark.slow
def test_check_timeout_is_an_error_and_run_continues() -> None:
    release = threading.Event()
    db = ChecksDB()

    def _hang(check: Check, _run: object) -> None:
        release.wait(5)
        check.set_result_failed("too late")

    db.new_checks_group("g").add(Check("g-hang", ["common"]).with_timeout(0.2).with_check_fn(_hang))
    add_check(db, "g", "g-next", ["common"])
    try:
        run = run_checks(db, "common", 60)
    finally:
        release.set()
    assert _states(run) == {"g-hang": "error", "g-next": "passed"}
    assert "timed out" in run.checks[0].skip_reason


@pytest.mark.slow
def test_global_timeout_aborts_running_check_and_skips_the_rest() -> None:
    release = threading.Event()
    db = ChecksDB()
    add_check(db, "a", "a-hang", ["common"], lambda check, _run: release.wait(5))
    add_check(db, "a", "a-two", ["common"])
    add_check(db, "b", "b-one", ["common"])
    try:
        run = run_checks(db, "common", 0.3)
    finally:
        release.set()
    assert _states(run) == {"a-hang": "aborted", "a-two": "skipped", "b-one": "skipped"}
    assert {check.skip_reason for check in run.checks} == {GLOBAL_TIMEOUT_REASON}
    assert run.stop_reason == GLOBAL_TIMEOUT_REASON


@pytest.mark.slow
def test_after_all_failure_never_blames_a_check_that_did_not_start() -> None:
    release = threading.Event()

    def _cleanup(_checks: list[Check]) -> None:
        raise RuntimeError("cleanup")

    db = ChecksDB()
    db.new_checks_group("a").with_after_all_fn(_cleanup)
    add_check(db, "a", "a-hang", ["common"], lambda check, _run: release.wait(5))
    add_check(db, "a", "a-never", ["common"])
    try:
        run = run_checks(db, "common", 0.3)
    finally:
        release.set()
    assert _states(run) == {"a-hang": "aborted", "a-never": "skipped"}
    assert {check.skip_reason for check in run.checks} == {GLOBAL_TIMEOUT_REASON}


def test_keyboard_interrupt_aborts_current_check() -> None:
    db = ChecksDB()

    def _interrupt(check: Check) -> None:
        raise KeyboardInterrupt

    db.new_checks_group("a").with_after_each_fn(_interrupt)
    add_check(db, "a", "a-one", ["common"])
    add_check(db, "a", "a-two", ["common"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert _states(run) == {"a-one": "aborted", "a-two": "skipped"}
    assert run.stop_reason == INTERRUPT_REASON


def test_every_selected_check_recorded_exactly_once_in_order() -> None:
    db = ChecksDB()
    for group in ("b", "a"):
        for index in range(3):
            add_check(db, group, f"{group}-{index}", ["common"] if index != 1 else ["extended"])
    run = run_checks(db, "common", 3600, clock=FakeClock())
    assert [check.id for check in run.checks] == ["b-0", "b-2", "a-0", "a-2"]
    assert run.summary() == {
        "b": {"passed": 2, "skipped": 0, "failed": 0, "error": 0, "aborted": 0},
        "a": {"passed": 2, "skipped": 0, "failed": 0, "error": 0, "aborted": 0},
    }
