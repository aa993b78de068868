from __future__ import annotations

from datetime import datetime
import threading
from typing import Iterable

from ..core.clock import SystemClock, format_timestamp
from ..core.context import RunContext
from ..core.errors import CheckAborted, RegistryError
from ..core.logging import log_event
from .model import CheckFn, CheckStatus, HookFn, ReportObject, SkipMode, SkipPredicate, report_objects_to_string


class Check:
    """A single selectable verification.

    Configured through ``with_*`` calls that return the same instance; ``validate``
    is called once the chain is complete (``ChecksGroup.add`` does this). Result
    setters are safe to call from the worker thread running the check body; once the
    engine closes the check, late writes are dropped.
    """

    def __init__(self, check_id: str, labels: Iterable[str] = ()) -> None:
        self.id = str(check_id).strip()
        ordered: list[str] = []
        for label in [*labels, self.id]:
            value = str(label).strip()
            if value and value not in ordered:
                ordered.append(value)
        self.labels: list[str] = ordered
        self.group_name = ""
        self.before_check_fn: HookFn | None = None
        self.after_check_fn: HookFn | None = None
        self.check_fn: CheckFn | None = None
        self.skip_check_fns: list[SkipPredicate] = []
        self.skip_mode = SkipMode.ANY
        self.timeout: float | None = None
        self.ctx = RunContext.quiet_default()
        self._lock = threading.Lock()
        self.reset()

    def __repr__(self) -> str:
        return f"Check({self.id!r}, status={self.status.value})"

    # builder

    def with_before_each_fn(self, fn: HookFn) -> "Check":
        self.before_check_fn = fn
        return self

    def with_after_each_fn(self, fn: HookFn) -> "Check":
        self.after_check_fn = fn
        return self

    def with_check_fn(self, fn: CheckFn) -> "Check":
        self.check_fn = fn
        return self

    def with_skip_check_fn(self, *predicates: SkipPredicate) -> "Check":
        self.skip_check_fns.extend(predicates)
        return self

    def with_skip_mode_any(self) -> "Check":
        self.skip_mode = SkipMode.ANY
        return self

    def with_skip_mode_all(self) -> "Check":
        self.skip_mode = SkipMode.ALL
        return self

    def with_timeout(self, seconds: float) -> "Check":
        self.timeout = float(seconds)
        return self

    def validate(self) -> "Check":
        if not self.id:
            raise RegistryError("check id cannot be empty")
        if self.check_fn is None or not callable(self.check_fn):
            raise RegistryError(f"check `{self.id}` has no check function")
        for hook in (self.before_check_fn, self.after_check_fn):
            if hook is not None and not callable(hook):
                raise RegistryError(f"check `{self.id}` has a non-callable hook")
        for index, predicate in enumerate(self.skip_check_fns):
            if not callable(predicate):
                raise RegistryError(f"check `{self.id}` skip predicate #{index} is not callable")
        if self.timeout is not None and self.timeout <= 0:
            raise RegistryError(f"check `{self.id}` timeout must be positive, got {self.timeout}")
        return self

    # results

    def reset(self) -> None:
        with self._lock:
            self.status = CheckStatus.PASSED
            self.compliant_objects: list[ReportObject] = []
            self.non_compliant_objects: list[ReportObject] = []
            self.details = ""
            self.skip_reason = ""
            self.abort_reason = ""
            self.failure_location = ""
            self.failure_line_content = ""
            self.start_time: datetime | None = None
            self.end_time: datetime | None = None
            self.start_monotonic = 0.0
            self.end_monotonic = 0.0
            self._output: list[str] = []
            self._closed = False

    def set_result(self, compliant: Iterable[ReportObject], non_compliant: Iterable[ReportObject]) -> None:
        compliant_rows = list(compliant or ())
        non_compliant_rows = list(non_compliant or ())
        with self._lock:
            if self._closed or self.status == CheckStatus.ABORTED:
                return
            self.compliant_objects = compliant_rows
            self.non_compliant_objects = non_compliant_rows
            self.details = report_objects_to_string(compliant_rows, non_compliant_rows)
            if self.status in {CheckStatus.ERROR, CheckStatus.SKIPPED}:
                return
            self.status = CheckStatus.FAILED if non_compliant_rows else CheckStatus.PASSED

    def set_result_failed(self, reason: str) -> None:
        self._set_status(CheckStatus.FAILED, reason)

    def set_result_skipped(self, reason: str) -> None:
        self._set_status(CheckStatus.SKIPPED, reason)

    def set_result_error(self, reason: str) -> None:
        self._set_status(CheckStatus.ERROR, reason)

    def set_result_aborted(self, reason: str) -> None:
        with self._lock:
            self.status = CheckStatus.ABORTED
            self.skip_reason = str(reason)

    def _set_status(self, status: CheckStatus, reason: str) -> None:
        with self._lock:
            if self._closed or self.status == CheckStatus.ABORTED:
                return
            if self.status == CheckStatus.ERROR and status != CheckStatus.ERROR:
                return
            self.status = status
            self.skip_reason = str(reason)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_start(self, clock: SystemClock) -> None:
        self.start_time = clock.now()
        self.start_monotonic = clock.monotonic()

    def mark_end(self, clock: SystemClock) -> None:
        self.end_time = clock.now()
        self.end_monotonic = clock.monotonic()
        if self.start_time is None:
            self.start_time = self.end_time
            self.start_monotonic = self.end_monotonic

    @property
    def duration_ns(self) -> int:
        return max(0, int(round((self.end_monotonic - self.start_monotonic) * 1_000_000_000)))

    @property
    def start_timestamp(self) -> str:
        return format_timestamp(self.start_time, self.start_monotonic) if self.start_time else ""

    @property
    def end_timestamp(self) -> str:
        return format_timestamp(self.end_time, self.end_monotonic) if self.end_time else ""

    def abort(self, reason: str) -> None:
        """Stop the run: this check becomes aborted and every remaining check is skipped."""
        raise CheckAborted(str(reason))

    # logging

    def _log(self, level: str, message: str, *args: object) -> None:
        text = message % args if args else message
        with self._lock:
            if self._closed:
                return
            stamp = datetime.now().strftime("%m-%d %H:%M:%S.%f")[:-3]
            self._output.append(f"{level.upper():5} [{stamp}] [{self.id}] {text}")
        log_event(self.ctx, level, "check", "log", check_id=self.id, msg=text)

    def log_debug(self, message: str, *args: object) -> None:
        self._log("debug", message, *args)

    def log_info(self, message: str, *args: object) -> None:
        self._log("info", message, *args)

    def log_warn(self, message: str, *args: object) -> None:
        self._log("warn", message, *args)

    def log_error(self, message: str, *args: object) -> None:
        self._log("error", message, *args)

    def get_logs(self) -> str:
        with self._lock:
            return "".join(f"{line}\n" for line in self._output)


__all__ = ["Check"]
