from __future__ import annotations

from typing import Any

from .engine import RunState
from .model import CheckStatus

_COLUMNS = ("passed", "failed", "skipped", "error", "aborted")


def build_summary_payload(run: RunState) -> dict[str, Any]:
    groups = run.summary()
    totals = {column: sum(counts[column] for counts in groups.values()) for column in _COLUMNS}
    return {
        "labels_filter": run.labels_filter,
        "stop_reason": run.stop_reason,
        "abort_trigger": run.abort_trigger,
        "groups": [{"name": name, **counts} for name, counts in groups.items()],
        "totals": {"checks": len(run.checks), **totals},
    }


def render_text(run: RunState) -> str:
    payload = build_summary_payload(run)
    name_width = max([len("SUITE"), *(len(row["name"]) for row in payload["groups"])])
    header = f"{'SUITE':<{name_width}}  " + "  ".join(f"{column.upper():>7}" for column in _COLUMNS)
    lines = [header, "-" * len(header)]
    for row in payload["groups"]:
        lines.append(f"{row['name']:<{name_width}}  " + "  ".join(f"{row[column]:>7}" for column in _COLUMNS))
    totals = payload["totals"]
    lines.append("-" * len(header))
    lines.append(f"{'TOTAL':<{name_width}}  " + "  ".join(f"{totals[column]:>7}" for column in _COLUMNS))
    if run.stop_reason:
        lines.append(f"run stopped: {run.stop_reason}")
    if run.abort_trigger:
        lines.append(f"abort trigger: {run.abort_trigger}")
    return "\n".join(lines)


def render_failed_checks(run: RunState) -> str:
    """Failed/errored checks followed by their captured output."""
    blocks: list[str] = []
    for check in run.failed_checks():
        title = f"[{check.status.value.upper()}] {check.id}"
        reason = check.abort_reason or check.skip_reason
        if reason:
            title = f"{title}: {reason}"
        body = check.get_logs().rstrip()
        if check.status == CheckStatus.FAILED and check.non_compliant_objects:
            objects = "\n".join(
                "  " + ", ".join(f"{key}={value}" for key, value in zip(obj.fields_keys, obj.fields_values))
                for obj in check.non_compliant_objects
            )
            body = f"{body}\n{objects}" if body else objects
        blocks.append(f"{title}\n{body}" if body else title)
    return "\n\n".join(blocks)


__all__ = ["build_summary_payload", "render_failed_checks", "render_text"]
