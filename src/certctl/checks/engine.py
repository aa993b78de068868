from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import contextlib
from dataclasses import dataclass, field
from datetime import datetime
import signal
import threading
import traceback
from typing import Callable, Iterator

from ..core.clock import SystemClock
from ..core.context import RunContext
from ..core.errors import CheckAborted, ConfigError, RunInterrupted
from ..core.logging import log_event
from .catalog import ALL_TAGS
from .check import Check
from .group import ChecksGroup
from .labels import LabelsExprEvaluator, compile_labels_expr
from .model import CheckStatus, SkipMode
from .registry import ChecksDB

GLOBAL_TIMEOUT_REASON = "global time-out"
INTERRUPT_REASON = "SIGINT/SIGTERM"


def expand_labels_filter(labels_filter: str) -> str:
    raw = str(labels_filter).strip()
    return ",".join(ALL_TAGS) if raw == "all" else raw


def abort_annotation(trigger_id: str) -> str:
    return f"suite aborted due to failure of test {trigger_id}"


@dataclass
class RunState:
    """Everything one ``run_checks`` invocation produced, in execution order."""

    labels_filter: str
    evaluator: LabelsExprEvaluator
    timeout: float
    ctx: RunContext
    abort_on_failure: bool = False
    checks: list[Check] = field(default_factory=list)
    abort_trigger: str = ""
    abort_reason: str = ""
    stop_reason: str = ""
    group_errors: list[str] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    current: Check | None = None
    _recorded: set[str] = field(default_factory=set)

    def record(self, check: Check) -> None:
        if check.id in self._recorded:
            return
        self._recorded.add(check.id)
        self.checks.append(check)

    def is_recorded(self, check: Check) -> bool:
        return check.id in self._recorded

    @property
    def failed_count(self) -> int:
        return sum(1 for check in self.checks if check.status == CheckStatus.FAILED)

    def failed_checks(self) -> list[Check]:
        return [check for check in self.checks if check.status in {CheckStatus.FAILED, CheckStatus.ERROR, CheckStatus.ABORTED}]

    def summary(self) -> dict[str, dict[str, int]]:
        rows: dict[str, dict[str, int]] = {}
        for check in self.checks:
            counts = rows.setdefault(check.group_name, {status.value: 0 for status in CheckStatus})
            counts[check.status.value] += 1
        return rows


def _failure_location(exc: BaseException) -> tuple[str, str]:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "", ""
    frame = frames[-1]
    return f"{frame.filename}:{frame.lineno}", (frame.line or "").strip()


def _should_skip(check: Check) -> tuple[bool, str]:
    reasons: list[str] = []
    for index, predicate in enumerate(check.skip_check_fns):
        try:
            skip, reason = predicate()
        except Exception as exc:  # noqa: BLE001
            return True, f"skipCheck function (idx={index}) raised: {exc}"
        if not skip:
            continue
        reasons.append(str(reason))
        if check.skip_mode == SkipMode.ANY:
            return True, str(reason)
    if reasons and len(reasons) == len(check.skip_check_fns):
        return True, ", ".join(reasons)
    return False, ""


class _Engine:
    def __init__(self, run: RunState, deadline: float, clock: SystemClock) -> None:
        self.run = run
        self.deadline = deadline
        self.clock = clock

    def _log(self, level: str, action: str, **fields: object) -> None:
        log_event(self.run.ctx, level, "engine", action, **fields)

    def remaining(self) -> float:
        return self.deadline - self.clock.monotonic()

    def finish(self, check: Check) -> None:
        if check.end_time is None:
            check.mark_end(self.clock)
        run = self.run
        if run.abort_trigger and check.id != run.abort_trigger:
            check.abort_reason = run.abort_reason
            check.log_warn("%s", run.abort_reason)
        elif run.abort_on_failure and not run.abort_trigger and check.status == CheckStatus.FAILED:
            run.abort_trigger = check.id
            run.abort_reason = abort_annotation(check.id)
            self._log("warn", "abort_trigger", check_id=check.id)
        run.record(check)
        self._log("info", "check_result", check_id=check.id, status=check.status.value, reason=check.skip_reason)

    def skip(self, checks: list[Check], reason: str) -> None:
        for check in checks:
            if self.run.is_recorded(check):
                continue
            check.mark_start(self.clock)
            check.set_result_skipped(reason)
            self.finish(check)

    def _group_failure(self, group: ChecksGroup, failure: str, exc: Exception, check: Check, rest: list[Check]) -> None:
        self._log("error", "group_hook_failed", group=group.name, hook=failure, error=str(exc))
        self.run.group_errors.append(f"group {group.name} {failure}: {exc}")
        check.set_result_error(f"{failure}: {exc}")
        self.finish(check)
        self.skip(rest, f"group {group.name} {failure}")

    def _call_hook(self, fn: Callable[..., object] | None, arg: object) -> Exception | None:
        if fn is None:
            return None
        try:
            fn(arg)
        except Exception as exc:  # noqa: BLE001
            return exc
        return None

    def run_group(self, group: ChecksGroup, checks: list[Check]) -> str:
        self._log("info", "group_start", group=group.name, selected=len(checks), total=len(group.checks))
        error = self._call_hook(group.before_all_fn, list(checks))
        if error is not None:
            first = checks[0]
            first.mark_start(self.clock)
            self._group_failure(group, "beforeAll function unexpected error", error, first, checks[1:])
            self._run_after_all(group, checks, [first])
            return ""
        stop_reason = ""
        started: list[Check] = []
        for index, check in enumerate(checks):
            if self.remaining() <= 0:
                stop_reason = GLOBAL_TIMEOUT_REASON
                break
            rest = checks[index + 1 :]
            self.run.current = check
            check.mark_start(self.clock)
            started.append(check)
            error = self._call_hook(group.before_each_fn, check)
            if error is not None:
                self._group_failure(group, "beforeEach function unexpected error", error, check, rest)
                self._call_hook(group.after_each_fn, check)
                break
            skip, reason = _should_skip(check)
            if skip:
                check.set_result_skipped(reason)
                check.mark_end(self.clock)
            else:
                stop_reason = self._execute(check)
            error = self._call_hook(group.after_each_fn, check)
            if error is not None:
                self._group_failure(group, "afterEach function unexpected error", error, check, rest)
                break
            self.finish(check)
            if stop_reason:
                break
        self.run.current = None
        self._run_after_all(group, checks, started)
        return stop_reason

    def _run_after_all(self, group: ChecksGroup, checks: list[Check], started: list[Check]) -> None:
        error = self._call_hook(group.after_all_fn, list(checks))
        if error is None:
            return
        self._log("error", "group_hook_failed", group=group.name, hook="afterAll", error=str(error))
        self.run.group_errors.append(f"group {group.name} afterAll function unexpected error: {error}")
        # only a check that actually started can carry the failure
        if not started:
            return
        last = started[-1]
        if last.status != CheckStatus.ABORTED:
            last.set_result_error(f"afterAll function unexpected error: {error}")

    def _execute(self, check: Check) -> str:
        remaining = self.remaining()
        own_budget = check.timeout if check.timeout is not None and check.timeout < remaining else None
        budget = own_budget if own_budget is not None else remaining
        self._log("debug", "check_start", check_id=check.id, labels=",".join(check.labels), budget_s=round(budget, 3))

        def body() -> tuple[str, Exception | None]:
            stage = "before check function"
            try:
                if check.before_check_fn is not None:
                    check.before_check_fn(check)
                stage = "function"
                check.check_fn(check, self.run)  # type: ignore[misc]
                stage = "after check function"
                if check.after_check_fn is not None:
                    check.after_check_fn(check)
            except Exception as exc:  # noqa: BLE001
                return stage, exc
            return "", None

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"check-{check.id}")
        try:
            future = pool.submit(body)
            try:
                stage, exc = future.result(timeout=max(0.001, budget))
            except FutureTimeoutError:
                check.mark_end(self.clock)
                if own_budget is not None:
                    check.set_result_error(f"check {check.id} timed out after {own_budget:g}s")
                    check.close()
                    return ""
                check.set_result_aborted(GLOBAL_TIMEOUT_REASON)
                check.close()
                return GLOBAL_TIMEOUT_REASON
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        check.mark_end(self.clock)
        if isinstance(exc, CheckAborted):
            check.log_warn("check aborted: %s", exc.reason)
            check.set_result_aborted(exc.reason)
            check.close()
            return exc.reason
        if exc is not None:
            check.failure_location, check.failure_line_content = _failure_location(exc)
            check.log_error("unexpected error while running check %s %s: %s", check.id, stage, exc)
            check.set_result_error(f"check {check.id} {stage} unexpected error: {exc}")
        return ""


@contextlib.contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(_signum: int, _frame: object) -> None:
        raise RunInterrupted(INTERRUPT_REASON)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def run_checks(
    db: ChecksDB,
    labels_filter: str,
    timeout: float,
    *,
    abort_on_failure: bool = False,
    ctx: RunContext | None = None,
    clock: SystemClock | None = None,
) -> RunState:
    """Run every check of ``db`` selected by ``labels_filter`` within ``timeout`` seconds.

    The filter is compiled before anything runs. Checks that are not selected are
    never recorded; every selected check ends up in ``RunState.checks`` exactly once.
    """
    evaluator = compile_labels_expr(expand_labels_filter(labels_filter))
    if timeout is None or float(timeout) <= 0:
        raise ConfigError(f"global timeout must be positive, got {timeout}")
    ctx = ctx or RunContext.quiet_default()
    clock = clock or SystemClock()
    run = RunState(labels_filter=labels_filter, evaluator=evaluator, timeout=float(timeout), ctx=ctx, abort_on_failure=abort_on_failure)
    plan: list[tuple[ChecksGroup, list[Check]]] = []
    for group in db.groups:
        selected = [check for check in group.checks if evaluator.eval(check.labels)]
        for check in selected:
            check.reset()
            check.ctx = ctx
        plan.append((group, selected))
    run.start_time = clock.now()
    engine = _Engine(run, clock.monotonic() + float(timeout), clock)
    log_event(ctx, "info", "engine", "run_start", labels_filter=labels_filter, timeout_s=float(timeout))
    try:
        with _sigterm_as_interrupt():
            for group, selected in plan:
                if not selected:
                    continue
                if run.stop_reason:
                    break
                if engine.remaining() <= 0:
                    run.stop_reason = GLOBAL_TIMEOUT_REASON
                    break
                run.stop_reason = engine.run_group(group, selected)
    except (KeyboardInterrupt, RunInterrupted):
        run.stop_reason = INTERRUPT_REASON
        current = run.current
        if current is not None and not run.is_recorded(current):
            current.set_result_aborted(INTERRUPT_REASON)
            current.close()
            engine.finish(current)
    if run.stop_reason:
        log_event(ctx, "warn", "engine", "run_stopped", reason=run.stop_reason)
        for _group, selected in plan:
            engine.skip(selected, run.stop_reason)
    run.current = None
    run.end_time = clock.now()
    log_event(ctx, "info", "engine", "run_end", executed=len(run.checks), failed=run.failed_count)
    return run


__all__ = [
    "GLOBAL_TIMEOUT_REASON",
    "INTERRUPT_REASON",
    "RunState",
    "abort_annotation",
    "expand_labels_filter",
    "run_checks",
]
